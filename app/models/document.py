"""
Document model for uploaded medical records
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base

class Document(Base):
    """Medical document owned by exactly one user"""
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), index=True, nullable=False)
    title = Column(String(200), nullable=False)
    file_data = Column(JSON, nullable=False)  # {file_name, mime_type, size_bytes, encoded_payload}
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    category = relationship("Category", lazy="joined")

    @property
    def category_name(self):
        return self.category.name if self.category is not None else None

    def __repr__(self):
        return f"<Document(id={self.id}, user_id={self.user_id}, title='{self.title}')>"
