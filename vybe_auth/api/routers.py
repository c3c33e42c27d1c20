from fastapi import APIRouter
from vybe_auth.auth.routes import auth_router
from vybe_auth.common.routes import home_router


def build_public_routers(version_prefix: str) -> APIRouter:
    public_routers = APIRouter(prefix=version_prefix)

    public_routers.include_router(auth_router, prefix="/auth", tags=["auth"])
    public_routers.include_router(home_router, tags=["home"])
    return public_routers
