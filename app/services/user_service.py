"""
User service for registration, login and role listings
Handles all user-related business logic
"""

from typing import Optional
import asyncio
import logging

from app.models.user import User
from app.repositories.base import Repositories
from app.schemas.user import UserCreate, UserLogin
from app.auth.auth_handler import AuthHandler
from app.utils.error_handler import ConflictError, UserNotFoundError

logger = logging.getLogger(__name__)

class UserService:
    """Service for user management operations"""

    def __init__(self, repos: Repositories):
        self.repos = repos
        self.auth_handler = AuthHandler()

    async def create_user(self, user_data: UserCreate) -> User:
        """Create a new user account"""
        existing_user = await self.repos.users.get_user_by_username(user_data.username)
        if existing_user:
            raise ConflictError("Username already taken")

        # scrypt blocks for tens of milliseconds
        hashed_password = await asyncio.to_thread(self.auth_handler.get_password_hash, user_data.password)

        user = await self.repos.users.create_user(
            username=user_data.username,
            hashed_password=hashed_password,
            display_name=user_data.display_name,
            role=user_data.role,
            email=user_data.email
        )

        logger.info(f"Created new {user.role}: {user.username}")
        return user

    async def authenticate_user(self, login_data: UserLogin) -> Optional[User]:
        """Authenticate user credentials; returns None on any mismatch"""
        user = await self.repos.users.get_user_by_username(login_data.username)

        if not user:
            logger.warning(f"Login attempt with non-existent user: {login_data.username}")
            return None

        if not await asyncio.to_thread(self.auth_handler.verify_password, login_data.password, user.hashed_password):
            logger.warning(f"Failed login attempt for user: {user.username}")
            return None

        logger.info(f"Successful login for user: {user.username}")
        return user

    async def get_user_by_id(self, user_id: int) -> User:
        user = await self.repos.users.get_user(user_id)
        if not user:
            raise UserNotFoundError(user_id)
        return user

    async def get_patients(self) -> list[User]:
        """Patients listed on the doctor dashboard"""
        return await self.repos.users.get_users_by_role("patient")
