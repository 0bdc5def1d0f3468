import logging
import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi_users import BaseUserManager, FastAPIUsers, UUIDIDMixin
from fastapi_users.authentication import AuthenticationBackend, BearerTransport, JWTStrategy
from fastapi_users.db import SQLAlchemyUserDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from db.database import async_session_maker, get_async_session
from db.users import ROLE_DONOR, ROLE_HOSPITAL, ROLE_ORGANIZER, User

logger = logging.getLogger(__name__)


class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    reset_password_token_secret = settings.jwt_secret
    verification_token_secret = settings.jwt_secret

    async def on_after_register(self, user: User, request: Optional[Request] = None):
        logger.info("User %s registered as %s", user.id, user.role)

    async def on_after_login(self, user: User, request: Optional[Request] = None, response=None):
        logger.info("User %s logged in", user.id)


async def get_user_db(session: AsyncSession = Depends(get_async_session)):
    yield SQLAlchemyUserDatabase(session, User)


async def get_user_manager(user_db: SQLAlchemyUserDatabase = Depends(get_user_db)):
    yield UserManager(user_db)


bearer_transport = BearerTransport(tokenUrl="auth/jwt/login")


def get_jwt_strategy() -> JWTStrategy:
    return JWTStrategy(secret=settings.jwt_secret, lifetime_seconds=settings.jwt_lifetime_seconds)


auth_backend = AuthenticationBackend(
    name="jwt",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)

fastapi_users = FastAPIUsers[User, uuid.UUID](get_user_manager, [auth_backend])

current_active_user = fastapi_users.current_user(active=True)


def has_role(user: User, *roles: str) -> bool:
    return user.role in roles or user.is_superuser


def require_role(*roles: str):
    async def _current_user_with_role(user: User = Depends(current_active_user)) -> User:
        if not has_role(user, *roles):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed")
        return user

    return _current_user_with_role


current_hospital_user = require_role(ROLE_HOSPITAL)
current_organizer_user = require_role(ROLE_ORGANIZER)
current_donor_user = require_role(ROLE_DONOR)


async def user_from_token(token: Optional[str], user_manager: UserManager) -> Optional[User]:
    """Resolve a bearer token passed out-of-band (WebSocket query string)."""
    if not token:
        return None
    user = await get_jwt_strategy().read_token(token, user_manager)
    if user is None or not user.is_active:
        return None
    return user


async def user_from_socket_token(token: Optional[str]) -> Optional[User]:
    """``user_from_token`` on its own session, closed before the socket starts streaming."""
    async with async_session_maker() as session:
        return await user_from_token(token, UserManager(SQLAlchemyUserDatabase(session, User)))
