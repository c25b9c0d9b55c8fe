"""
Authentication endpoints for registration, login and the current user
"""

from fastapi import APIRouter, Depends, HTTPException, status, Request
from datetime import timedelta
import logging

from app.config import get_settings
from app.limiter import limiter
from app.repositories.base import Repositories
from app.repositories.sql import get_repositories
from app.schemas.user import UserCreate, UserLogin, PublicUser, TokenResponse
from app.services.user_service import UserService
from app.auth.auth_handler import AuthHandler, any_user_required
from app.utils.error_handler import RecordAccessError, AuthFailure

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/register", response_model=PublicUser, status_code=201)
@limiter.limit("5/minute")  # Strict limit to prevent spam registrations
async def register(
    request: Request,
    user_data: UserCreate,
    repos: Repositories = Depends(get_repositories)
):
    """Register a new patient or doctor account"""
    try:
        user_service = UserService(repos)
        new_user = await user_service.create_user(user_data)

        logger.info(f"New user registered: {new_user.username}")
        return PublicUser.model_validate(new_user)

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Registration failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user account"
        )

@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")  # Prevent brute force attacks
async def login(
    request: Request,
    login_data: UserLogin,
    repos: Repositories = Depends(get_repositories)
):
    """Authenticate user and return access token"""
    try:
        user_service = UserService(repos)
        auth_handler = AuthHandler()

        user = await user_service.authenticate_user(login_data)
        if not user:
            raise AuthFailure("Invalid username or password")

        expire_minutes = get_settings().access_token_expire_minutes
        token_data = {
            "sub": str(user.id),
            "username": user.username,
            "role": user.role
        }
        access_token = auth_handler.create_access_token(
            data=token_data,
            expires_delta=timedelta(minutes=expire_minutes)
        )

        return TokenResponse(
            access_token=access_token,
            token_type="bearer",
            expires_in=expire_minutes * 60,
            user=PublicUser.model_validate(user)
        )

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Login failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login failed"
        )

@router.get("/me", response_model=PublicUser)
@limiter.limit("30/minute")
async def get_current_user_info(
    request: Request,
    current_user: dict = Depends(any_user_required),
    repos: Repositories = Depends(get_repositories)
):
    """Get current user information"""
    try:
        user = await UserService(repos).get_user_by_id(current_user["user_id"])
        return PublicUser.model_validate(user)

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Failed to get current user info: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve user information"
        )

@router.post("/logout")
@limiter.limit("30/minute")
async def logout(
    request: Request,
    current_user: dict = Depends(any_user_required)
):
    """Logout user (client should discard token)"""
    logger.info(f"User logged out: {current_user['username']}")
    return {"message": "Logged out successfully"}
