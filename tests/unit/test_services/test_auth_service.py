"""Tests for the authentication and user management service."""

import pytest

from rabbitmq_admin.core.security import decode_token
from rabbitmq_admin.schemas.auth import UserCreateRequest
from rabbitmq_admin.services.auth_service import (
    authenticate_user,
    create_user,
    generate_token,
    get_user_by_username,
    list_users,
)


class TestAuthenticateUser:
    """Tests for authenticate_user."""

    @pytest.mark.asyncio
    async def test_valid_credentials(self, async_session, admin_user) -> None:
        user = await authenticate_user(async_session, "testadmin", "testpassword123")
        assert user is not None
        assert user.last_login_at is not None

    @pytest.mark.asyncio
    async def test_wrong_password(self, async_session, admin_user) -> None:
        assert await authenticate_user(async_session, "testadmin", "wrong-password") is None

    @pytest.mark.asyncio
    async def test_unknown_user(self, async_session) -> None:
        assert await authenticate_user(async_session, "nobody", "testpassword123") is None

    @pytest.mark.asyncio
    async def test_inactive_user(self, async_session, admin_user) -> None:
        admin_user.is_active = False
        await async_session.commit()
        assert await authenticate_user(async_session, "testadmin", "testpassword123") is None


class TestUserManagement:
    """Tests for create_user, get_user_by_username and list_users."""

    @pytest.mark.asyncio
    async def test_create_user(self, async_session) -> None:
        request = UserCreateRequest(username="bob", email="bob@test.com", password="password123", role="user")
        user = await create_user(async_session, request)
        assert user.id is not None
        assert user.hashed_password != "password123"
        assert (await get_user_by_username(async_session, "bob")).id == user.id

    @pytest.mark.asyncio
    async def test_duplicate_username_rejected(self, async_session, admin_user) -> None:
        request = UserCreateRequest(username="testadmin", email="other@test.com", password="password123", role="user")
        with pytest.raises(ValueError, match="already exists"):
            await create_user(async_session, request)

    @pytest.mark.asyncio
    async def test_list_users(self, async_session, admin_user, regular_user) -> None:
        users = await list_users(async_session)
        assert [u.username for u in users] == ["testadmin", "testuser"]


class TestGenerateToken:
    """Tests for generate_token."""

    def test_token_carries_username_and_role(self, settings, admin_user) -> None:
        token = generate_token(admin_user, settings)
        payload = decode_token(token.access_token, settings.jwt_secret_key, settings.jwt_algorithm)
        assert payload["sub"] == "testadmin"
        assert payload["role"] == "admin"
        assert token.expires_in == settings.jwt_access_token_expire_minutes * 60
