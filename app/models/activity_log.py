"""
Access log model for auditing who touched shared patient records
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from app.database import Base

class AccessLog(Base):
    """Audit row for QR token issuance and resolution attempts"""
    __tablename__ = "access_logs"
    
    id = Column(Integer, primary_key=True, index=True)
    endpoint = Column(String(255), nullable=False)
    method = Column(String(10), nullable=False)
    status_code = Column(Integer, nullable=False)
    user_id = Column(Integer, nullable=True)  # owner of the records, when known
    token_prefix = Column(String(8), nullable=True)  # never the full token
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    
    def __repr__(self):
        return f"<AccessLog(id={self.id}, endpoint='{self.endpoint}', status={self.status_code})>"
