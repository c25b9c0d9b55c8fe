"""
Medical condition summary model
"""

from sqlalchemy import Column, Integer, DateTime, Text, ForeignKey
from sqlalchemy.sql import func
from app.database import Base

class MedicalCondition(Base):
    """Free-text condition summary, one per patient"""
    __tablename__ = "medical_conditions"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, index=True, nullable=False)
    summary = Column(Text, nullable=False)
    last_updated = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<MedicalCondition(id={self.id}, user_id={self.user_id})>"
