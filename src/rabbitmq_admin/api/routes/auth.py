"""Authentication API endpoints.

POST /auth/login, GET /auth/me, GET /health, GET /info.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from rabbitmq_admin import __version__
from rabbitmq_admin.core.config import Settings, get_settings
from rabbitmq_admin.core.dependencies import get_async_session, get_current_user
from rabbitmq_admin.models.user import User
from rabbitmq_admin.schemas.auth import TokenResponse, UserResponse
from rabbitmq_admin.services import auth_service

router = APIRouter(tags=["auth"])


@router.get("/health", status_code=200)
async def health_check() -> dict:
    """Health check endpoint (no authentication required)."""
    return {"status": "healthy"}


@router.get("/info", status_code=200)
async def info(
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    """Return application version and environment."""
    return {
        "version": __version__,
        "environment": settings.environment,
    }


@router.post("/auth/login", response_model=TokenResponse)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    """Authenticate user and return a JWT access token."""
    user = await auth_service.authenticate_user(session, form_data.username, form_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth_service.generate_token(user, settings)


@router.get("/auth/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserResponse:
    """Return the authenticated user's profile."""
    return UserResponse.model_validate(current_user)
