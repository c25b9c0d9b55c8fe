"""
Category model for grouping a patient's documents
"""

from sqlalchemy import Column, Integer, String, ForeignKey
from app.database import Base

class Category(Base):
    """User-defined document category with a maintained document count"""
    __tablename__ = "categories"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String(100), nullable=False)
    count = Column(Integer, default=0, nullable=False)
    
    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}', count={self.count})>"
