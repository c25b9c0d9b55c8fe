"""
ORM models; importing this package registers every table on Base.metadata
"""

from app.models.user import User
from app.models.category import Category
from app.models.document import Document
from app.models.qr_code import QrCode
from app.models.medical_condition import MedicalCondition
from app.models.activity_log import AccessLog

__all__ = ["User", "Category", "Document", "QrCode", "MedicalCondition", "AccessLog"]
