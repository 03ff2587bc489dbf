"""Контекст пользователя: токен провайдера идентификации → профиль → роль."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bakery.core.database import get_db, get_session_maker
from bakery.core.logging_config import get_logger
from bakery.core.permissions import RESOURCE_ROLES, Resource, allowed_resources
from bakery.models import Profile
from bakery.models.profile import ProfileRole
from bakery.services.auth_service import decode_token

router = APIRouter(prefix="/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)
logger = get_logger(__name__)


class UserInfo(BaseModel):
    id: str
    role: str
    full_name: Optional[str] = None
    email: str = ""


async def _resolve_user(
    credentials: Optional[HTTPAuthorizationCredentials],
    db: AsyncSession,
) -> Optional[UserInfo]:
    has_header = credentials is not None and credentials.scheme.lower() == "bearer"
    if not has_header:
        logger.warning("auth: заголовок Authorization отсутствует или не Bearer")
        return None
    payload = decode_token(credentials.credentials)
    if not payload or "sub" not in payload:
        logger.warning("auth: токен не прошёл проверку (неверный или истёк)")
        return None
    profile = await db.get(Profile, str(payload["sub"]))
    if profile is None:
        logger.warning("auth: профиль %s не найден", payload["sub"])
        return None
    return UserInfo(
        id=profile.id,
        role=profile.role.value,
        full_name=profile.full_name,
        email=payload.get("email", ""),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Optional[UserInfo]:
    return await _resolve_user(credentials, db)


async def get_stream_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    maker: async_sessionmaker = Depends(get_session_maker),
) -> Optional[UserInfo]:
    """Для бесконечных ответов (SSE): своя сессия, закрытая до начала потока."""
    async with maker() as db:
        return await _resolve_user(credentials, db)


def require_roles(allowed_roles: List[ProfileRole], user_dependency=get_current_user):
    async def _check(
        current_user: Optional[UserInfo] = Depends(user_dependency),
    ) -> UserInfo:
        if not current_user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Требуется авторизация",
                headers={"WWW-Authenticate": "Bearer"},
            )
        try:
            role_enum = ProfileRole(current_user.role)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Неизвестная роль")
        if role_enum not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Недостаточно прав")
        return current_user
    return _check


RequireAnyAuth = require_roles([ProfileRole.USER, ProfileRole.STAFF, ProfileRole.ADMIN])


def require_resource(resource: Resource):
    return require_roles(RESOURCE_ROLES.get(resource, []))


RequireOrdersAccess = require_resource(Resource.ORDERS)
RequirePreparedAccess = require_resource(Resource.PREPARED)
RequireFifoAccess = require_resource(Resource.FIFO)
RequireVerificationAccess = require_resource(Resource.VERIFICATION)
RequireClearPool = require_resource(Resource.CLEAR_POOL)
RequireOrdersStream = require_roles(RESOURCE_ROLES[Resource.ORDERS], get_stream_user)


class MeResponse(BaseModel):
    id: str
    role: str
    full_name: Optional[str] = None
    email: str = ""
    resources: List[str]


@router.get("/me", response_model=MeResponse)
async def me(current_user: UserInfo = Depends(RequireAnyAuth)):
    """Текущий пользователь и разделы панели, доступные его роли."""
    return MeResponse(
        id=current_user.id,
        role=current_user.role,
        full_name=current_user.full_name,
        email=current_user.email,
        resources=allowed_resources(current_user.role),
    )
