from fastapi import APIRouter

from signed_upload.api.endpoints import health, sign

sign_router = APIRouter()
sign_router.include_router(sign.router)

health_router = APIRouter()
health_router.include_router(health.router)
