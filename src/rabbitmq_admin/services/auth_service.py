"""Console user accounts: credential checks, account creation, token issue."""

from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rabbitmq_admin.core.config import Settings
from rabbitmq_admin.core.security import create_access_token, hash_password, verify_password
from rabbitmq_admin.models.user import User
from rabbitmq_admin.schemas.auth import TokenResponse, UserCreateRequest


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    result = await session.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def authenticate_user(session: AsyncSession, username: str, password: str) -> User | None:
    """Check console credentials and stamp the login time.

    Returns:
        The matching active user, or None when the username is unknown,
        the password is wrong, or the account is deactivated.
    """
    user = await get_user_by_username(session, username)
    if user is None or not verify_password(password, user.hashed_password):
        logger.info(f"Rejected login for '{username}'")
        return None
    if not user.is_active:
        logger.info(f"Rejected login for deactivated account '{username}'")
        return None

    user.last_login_at = datetime.now(UTC)
    await session.commit()
    return user


async def create_user(session: AsyncSession, request: UserCreateRequest) -> User:
    """Create a console account.

    Raises:
        ValueError: If the username or email is already taken.
    """
    taken = await session.execute(
        select(User.id).where((User.username == request.username) | (User.email == request.email))
    )
    if taken.first() is not None:
        msg = f"Username '{request.username}' or email '{request.email}' already exists"
        raise ValueError(msg)

    user = User(
        username=request.username,
        email=request.email,
        hashed_password=hash_password(request.password),
        role=request.role,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info(f"Created {user.role} account '{user.username}'")
    return user


async def list_users(session: AsyncSession) -> list[User]:
    result = await session.execute(select(User).order_by(User.username))
    return list(result.scalars().all())


def generate_token(user: User, settings: Settings) -> TokenResponse:
    """Issue a bearer token carrying the username and console role."""
    minutes = settings.jwt_access_token_expire_minutes
    access_token = create_access_token(
        subject=user.username,
        role=user.role,
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=minutes,
    )
    return TokenResponse(access_token=access_token, expires_in=minutes * 60)
