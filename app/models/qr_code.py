"""
QR code token model for sharing a patient's records with doctors
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.database import Base

class QrCode(Base):
    """Capability token granting read access to one user's records"""
    __tablename__ = "qr_codes"
    
    id = Column(Integer, primary_key=True, index=True)
    # unique: only the most recently issued token per user is stored
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, index=True, nullable=False)
    token = Column(String(64), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<QrCode(id={self.id}, user_id={self.user_id}, token='{self.token[:8]}...')>"
