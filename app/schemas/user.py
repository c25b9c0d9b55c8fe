"""
Pydantic schemas for user operations
"""

from pydantic import BaseModel, Field, validator, EmailStr
from typing import Optional
from datetime import datetime
import re

from app.models.user import USER_ROLES

class UserBase(BaseModel):
    """Base user schema"""
    username: str = Field(..., min_length=3, max_length=50, description="Username (3-50 characters)")
    display_name: str = Field(..., min_length=1, max_length=100, description="Name shown to doctors")
    email: Optional[EmailStr] = Field(None, description="Optional email address")

    @validator('username')
    def validate_username(cls, v):
        if not re.match(r'^[a-zA-Z0-9_-]+$', v):
            raise ValueError('Username can only contain letters, numbers, underscores, and hyphens')
        return v.lower()

    @validator('display_name')
    def validate_display_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Display name is required')
        return v

class UserCreate(UserBase):
    """Schema for registering a new user"""
    password: str = Field(..., min_length=8, max_length=128, description="Password (minimum 8 characters)")
    role: str = Field("patient", description="patient or doctor")

    @validator('password')
    def validate_password(cls, v):
        if not re.search(r'[A-Za-z]', v):
            raise ValueError('Password must contain at least one letter')
        if not re.search(r'\d', v):
            raise ValueError('Password must contain at least one digit')
        return v

    @validator('role')
    def validate_role(cls, v):
        if v not in USER_ROLES:
            raise ValueError(f'Role must be one of: {", ".join(USER_ROLES)}')
        return v

class UserLogin(BaseModel):
    """Schema for user login"""
    username: str = Field(..., description="Username")
    password: str = Field(..., description="Password")

    @validator('username')
    def validate_username(cls, v):
        v = v.strip().lower()
        if not v:
            raise ValueError('Username is required')
        return v

class PublicUser(BaseModel):
    """User as exposed to any caller; the credential hash is never part of it"""
    id: int
    username: str
    display_name: str = Field(..., serialization_alias="displayName")
    email: Optional[str] = None
    role: str
    created_at: datetime = Field(..., serialization_alias="createdAt")

    class Config:
        from_attributes = True
        frozen = True

class TokenResponse(BaseModel):
    """Schema for authentication token response"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: PublicUser
