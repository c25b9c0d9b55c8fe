"""
Pydantic schemas for medical condition summaries
"""

from pydantic import BaseModel, Field, validator
from datetime import datetime

class MedicalConditionUpsert(BaseModel):
    """Schema for creating or replacing a condition summary"""
    summary: str = Field(..., min_length=1, max_length=10000)

    @validator('summary')
    def validate_summary(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Summary is required')
        return v

class MedicalConditionResponse(BaseModel):
    id: int
    user_id: int = Field(..., serialization_alias="userId")
    summary: str
    last_updated: datetime = Field(..., serialization_alias="lastUpdated")

    class Config:
        from_attributes = True
