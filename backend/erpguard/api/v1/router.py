from fastapi import APIRouter
from erpguard.api.v1 import permissions, quotas, companies

api_router = APIRouter()

api_router.include_router(permissions.router, prefix="/permissions", tags=["permissions"])
api_router.include_router(quotas.router, prefix="/quotas", tags=["quotas"])
api_router.include_router(companies.router, prefix="/companies", tags=["companies"])
