"""
Pydantic schemas for QR code sharing
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from app.schemas.user import PublicUser
from app.schemas.document import DocumentResponse

class QrCodeResponse(BaseModel):
    """Issued sharing token, rendered by the client into a QR code"""
    id: int
    user_id: int = Field(..., serialization_alias="userId")
    token: str
    expires_at: Optional[datetime] = Field(None, serialization_alias="expiresAt")
    document_id: Optional[int] = Field(None, serialization_alias="documentId")
    created_at: datetime = Field(..., serialization_alias="createdAt")

    class Config:
        from_attributes = True

class SharedRecord(BaseModel):
    """Snapshot of a patient's profile and documents as seen through a token"""
    user: PublicUser
    documents: list[DocumentResponse]

    class Config:
        frozen = True

class AccessLogResponse(BaseModel):
    """Audit entry shown to the patient whose records were accessed"""
    id: int
    endpoint: str
    method: str
    status_code: int = Field(..., serialization_alias="statusCode")
    token_prefix: Optional[str] = Field(None, serialization_alias="tokenPrefix")
    ip_address: Optional[str] = Field(None, serialization_alias="ipAddress")
    created_at: datetime = Field(..., serialization_alias="createdAt")

    class Config:
        from_attributes = True
