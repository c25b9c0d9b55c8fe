"""
Storage contracts used by the services

The services only talk to these interfaces, so the same sharing logic runs
against the SQLAlchemy repositories in production and the in-memory ones in
tests or storage-less demo deployments.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.models.user import User
from app.models.category import Category
from app.models.document import Document
from app.models.qr_code import QrCode
from app.models.medical_condition import MedicalCondition

class UserRepository(ABC):

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    async def create_user(
        self,
        username: str,
        hashed_password: str,
        display_name: str,
        role: str,
        email: Optional[str] = None
    ) -> User: ...

    @abstractmethod
    async def get_users_by_role(self, role: str) -> list[User]: ...

class CategoryRepository(ABC):

    @abstractmethod
    async def get_categories(self, user_id: int) -> list[Category]: ...

    @abstractmethod
    async def get_category(self, category_id: int) -> Optional[Category]: ...

    @abstractmethod
    async def create_category(self, user_id: int, name: str) -> Category: ...

class DocumentRepository(ABC):
    """Documents plus the category counts that depend on them

    create, update and delete adjust Category.count in the same unit of work
    as the document change.
    """

    @abstractmethod
    async def get_documents_for_user(self, user_id: int) -> list[Document]: ...

    @abstractmethod
    async def get_documents_by_category(self, user_id: int, category_id: int) -> list[Document]: ...

    @abstractmethod
    async def get_document(self, document_id: int) -> Optional[Document]: ...

    @abstractmethod
    async def create_document(
        self,
        user_id: int,
        category_id: int,
        title: str,
        file_data: dict,
        date: str,
        notes: Optional[str] = None
    ) -> Document: ...

    @abstractmethod
    async def update_document(self, document_id: int, changes: dict) -> Optional[Document]: ...

    @abstractmethod
    async def delete_document(self, document_id: int) -> bool: ...

class TokenRepository(ABC):

    @abstractmethod
    async def get_by_user_id(self, user_id: int) -> Optional[QrCode]: ...

    @abstractmethod
    async def get_by_token(self, token: str) -> Optional[QrCode]: ...

    @abstractmethod
    async def create(
        self,
        user_id: int,
        token: str,
        expires_at: Optional[datetime],
        document_id: Optional[int] = None
    ) -> QrCode: ...

    @abstractmethod
    async def replace_for_user(
        self,
        user_id: int,
        token: str,
        expires_at: Optional[datetime],
        document_id: Optional[int] = None
    ) -> QrCode:
        """Atomically drop the user's current token and store the new one"""

    @abstractmethod
    async def delete(self, qr_code_id: int) -> bool: ...

class MedicalConditionRepository(ABC):

    @abstractmethod
    async def get(self, user_id: int) -> Optional[MedicalCondition]: ...

    @abstractmethod
    async def upsert(self, user_id: int, summary: str) -> MedicalCondition: ...

@dataclass
class Repositories:
    """Bundle handed to services and route handlers"""
    users: UserRepository
    categories: CategoryRepository
    documents: DocumentRepository
    tokens: TokenRepository
    conditions: MedicalConditionRepository
