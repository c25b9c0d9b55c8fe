"""
Pydantic schemas for documents, categories and their file payloads
"""

from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import datetime
import base64
import binascii
import re

from app.config import get_settings

ALLOWED_MIME_TYPES = ("application/pdf", "image/jpeg", "image/png")

def decode_payload(encoded_payload: str) -> bytes:
    """Decode a base64 file payload, rejecting anything that is not strict base64"""
    try:
        return base64.b64decode(encoded_payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError('File payload must be valid base64')

def validate_content_date(v: str) -> str:
    if not re.match(r'^\d{4}-\d{2}-\d{2}$', v):
        raise ValueError('Date must be in format YYYY-MM-DD')
    try:
        datetime.strptime(v, "%Y-%m-%d")
    except ValueError:
        raise ValueError('Date must be a valid calendar date')
    return v

class FilePayload(BaseModel):
    """Uploaded file: name, declared type and size, base64 content"""
    file_name: str = Field(..., min_length=1, max_length=255, serialization_alias="fileName")
    mime_type: str = Field(..., serialization_alias="mimeType")
    size_bytes: int = Field(..., gt=0, serialization_alias="sizeBytes")
    encoded_payload: str = Field(..., min_length=1, serialization_alias="encodedPayload")

    @validator('file_name')
    def validate_file_name(cls, v):
        v = v.strip()
        if not v or '/' in v or '\\' in v:
            raise ValueError('File name must be a plain file name')
        return v

    @validator('mime_type')
    def validate_mime_type(cls, v):
        v = v.strip().lower()
        if v not in ALLOWED_MIME_TYPES:
            raise ValueError(f'File type must be one of: {", ".join(ALLOWED_MIME_TYPES)}')
        return v

    @validator('size_bytes')
    def validate_size(cls, v):
        max_bytes = get_settings().max_upload_bytes
        if v > max_bytes:
            raise ValueError(f'File size must be at most {max_bytes} bytes')
        return v

    @validator('encoded_payload')
    def validate_encoded_payload(cls, v, values, **kwargs):
        content = decode_payload(v)
        if not content:
            raise ValueError('File is empty')
        if 'size_bytes' in values and len(content) != values['size_bytes']:
            raise ValueError('Declared size does not match the file content')
        return v

    @classmethod
    def from_bytes(cls, file_name: str, mime_type: str, content: bytes) -> "FilePayload":
        """Build a payload from raw uploaded bytes"""
        return cls(
            file_name=file_name,
            mime_type=mime_type,
            size_bytes=len(content),
            encoded_payload=base64.b64encode(content).decode("ascii")
        )

    def content(self) -> bytes:
        return decode_payload(self.encoded_payload)

    class Config:
        from_attributes = True

class StoredFile(BaseModel):
    """A file as it was stored; upload limits are not re-applied on read"""
    file_name: str = Field(..., serialization_alias="fileName")
    mime_type: str = Field(..., serialization_alias="mimeType")
    size_bytes: int = Field(..., serialization_alias="sizeBytes")
    encoded_payload: str = Field(..., serialization_alias="encodedPayload")

    def content(self) -> bytes:
        return base64.b64decode(self.encoded_payload)

    class Config:
        from_attributes = True
        frozen = True

def normalize_title(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError('Title is required')
    return v

class DocumentCreate(BaseModel):
    """Schema for creating a new document"""
    title: str = Field(..., min_length=1, max_length=200)
    category_id: int = Field(..., gt=0)
    date: str = Field(..., description="Date of the record (YYYY-MM-DD)")
    notes: Optional[str] = Field(None, max_length=5000)
    file: FilePayload

    @validator('title')
    def validate_title(cls, v):
        return normalize_title(v)

    @validator('date')
    def validate_date(cls, v):
        return validate_content_date(v)

class DocumentUpdate(BaseModel):
    """Schema for editing or recategorizing a document"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    category_id: Optional[int] = Field(None, gt=0)
    date: Optional[str] = Field(None)
    notes: Optional[str] = Field(None, max_length=5000)

    @validator('date')
    def validate_date(cls, v):
        if v is None:
            return v
        return validate_content_date(v)

    @validator('title')
    def validate_title(cls, v):
        if v is None:
            return v
        return normalize_title(v)

class DocumentResponse(BaseModel):
    """Schema for document responses"""
    id: int
    user_id: int = Field(..., serialization_alias="userId")
    category_id: int = Field(..., serialization_alias="categoryId")
    category_name: Optional[str] = Field(None, serialization_alias="categoryName")
    title: str
    file_data: StoredFile = Field(..., serialization_alias="fileData")
    date: str
    notes: Optional[str] = None
    created_at: datetime = Field(..., serialization_alias="createdAt")

    class Config:
        from_attributes = True
        frozen = True

class CategoryCreate(BaseModel):
    """Schema for creating a category for the current user"""
    name: str = Field(..., min_length=1, max_length=100)

    @validator('name')
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Category name is required')
        return v

class CategoryResponse(BaseModel):
    """Schema for category responses"""
    id: int
    user_id: int = Field(..., serialization_alias="userId")
    name: str
    count: int

    class Config:
        from_attributes = True
