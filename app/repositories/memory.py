"""
In-memory repositories

Used by the service tests and by deployments that run without a database.
Records are plain (transient) ORM instances so they serialize through the
same response schemas as database rows.
"""

import asyncio
from datetime import datetime
from typing import Optional

from app.models.user import User
from app.models.category import Category
from app.models.document import Document
from app.models.qr_code import QrCode
from app.models.medical_condition import MedicalCondition
from app.repositories.base import (
    UserRepository, CategoryRepository, DocumentRepository,
    TokenRepository, MedicalConditionRepository, Repositories
)
from app.utils.error_handler import DatabaseError

class MemoryStorage:
    """Process-wide tables keyed by incrementing ids"""

    def __init__(self):
        self.users: dict[int, User] = {}
        self.categories: dict[int, Category] = {}
        self.documents: dict[int, Document] = {}
        self.qr_codes: dict[int, QrCode] = {}
        self.conditions: dict[int, MedicalCondition] = {}
        self._counters: dict[str, int] = {}
        self.token_lock = asyncio.Lock()

    def next_id(self, table: str) -> int:
        self._counters[table] = self._counters.get(table, 0) + 1
        return self._counters[table]

class MemoryUserRepository(UserRepository):

    def __init__(self, storage: MemoryStorage):
        self.storage = storage

    async def get_user(self, user_id: int) -> Optional[User]:
        return self.storage.users.get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        username = username.lower()
        return next((u for u in self.storage.users.values() if u.username == username), None)

    async def create_user(self, username, hashed_password, display_name, role, email=None) -> User:
        if await self.get_user_by_username(username):
            raise DatabaseError(f"Username {username} already exists")
        user = User(
            id=self.storage.next_id("users"),
            username=username.lower(),
            hashed_password=hashed_password,
            display_name=display_name,
            role=role,
            email=email.lower() if email else None,
            created_at=datetime.utcnow()
        )
        self.storage.users[user.id] = user
        return user

    async def get_users_by_role(self, role: str) -> list[User]:
        users = [u for u in self.storage.users.values() if u.role == role]
        return sorted(users, key=lambda u: u.display_name)

class MemoryCategoryRepository(CategoryRepository):

    def __init__(self, storage: MemoryStorage):
        self.storage = storage

    async def get_categories(self, user_id: int) -> list[Category]:
        return [c for c in self.storage.categories.values() if c.user_id == user_id]

    async def get_category(self, category_id: int) -> Optional[Category]:
        return self.storage.categories.get(category_id)

    async def create_category(self, user_id: int, name: str) -> Category:
        category = Category(id=self.storage.next_id("categories"), user_id=user_id, name=name, count=0)
        self.storage.categories[category.id] = category
        return category

class MemoryDocumentRepository(DocumentRepository):

    def __init__(self, storage: MemoryStorage):
        self.storage = storage

    def _adjust_count(self, category_id: int, delta: int) -> Optional[Category]:
        category = self.storage.categories.get(category_id)
        if category is not None:
            category.count = max(0, category.count + delta)
        return category

    @staticmethod
    def _newest_first(documents: list[Document]) -> list[Document]:
        return sorted(documents, key=lambda d: (d.date, d.id), reverse=True)

    async def get_documents_for_user(self, user_id: int) -> list[Document]:
        return self._newest_first([d for d in self.storage.documents.values() if d.user_id == user_id])

    async def get_documents_by_category(self, user_id: int, category_id: int) -> list[Document]:
        return self._newest_first([
            d for d in self.storage.documents.values()
            if d.user_id == user_id and d.category_id == category_id
        ])

    async def get_document(self, document_id: int) -> Optional[Document]:
        return self.storage.documents.get(document_id)

    async def create_document(self, user_id, category_id, title, file_data, date, notes=None) -> Document:
        document = Document(
            id=self.storage.next_id("documents"),
            user_id=user_id,
            category_id=category_id,
            title=title,
            file_data=file_data,
            date=date,
            notes=notes,
            created_at=datetime.utcnow()
        )
        document.category = self._adjust_count(category_id, 1)
        self.storage.documents[document.id] = document
        return document

    async def update_document(self, document_id: int, changes: dict) -> Optional[Document]:
        document = self.storage.documents.get(document_id)
        if document is None:
            return None

        new_category_id = changes.get("category_id")
        if new_category_id and new_category_id != document.category_id:
            self._adjust_count(document.category_id, -1)
            document.category = self._adjust_count(new_category_id, 1)

        for field, value in changes.items():
            setattr(document, field, value)
        return document

    async def delete_document(self, document_id: int) -> bool:
        document = self.storage.documents.pop(document_id, None)
        if document is None:
            return False
        self._adjust_count(document.category_id, -1)
        return True

class MemoryTokenRepository(TokenRepository):

    def __init__(self, storage: MemoryStorage):
        self.storage = storage

    async def get_by_user_id(self, user_id: int) -> Optional[QrCode]:
        return next((q for q in self.storage.qr_codes.values() if q.user_id == user_id), None)

    async def get_by_token(self, token: str) -> Optional[QrCode]:
        return next((q for q in self.storage.qr_codes.values() if q.token == token), None)

    def _store(self, user_id, token, expires_at, document_id) -> QrCode:
        if any(q.token == token for q in self.storage.qr_codes.values()):
            raise DatabaseError("QR code token already exists")
        qr_code = QrCode(
            id=self.storage.next_id("qr_codes"),
            user_id=user_id,
            token=token,
            expires_at=expires_at,
            document_id=document_id,
            created_at=datetime.utcnow()
        )
        self.storage.qr_codes[qr_code.id] = qr_code
        return qr_code

    async def create(self, user_id, token, expires_at, document_id=None) -> QrCode:
        if await self.get_by_user_id(user_id):
            raise DatabaseError(f"User {user_id} already has a QR code")
        return self._store(user_id, token, expires_at, document_id)

    async def replace_for_user(self, user_id, token, expires_at, document_id=None) -> QrCode:
        async with self.storage.token_lock:
            stale = [q.id for q in self.storage.qr_codes.values() if q.user_id == user_id]
            for qr_code_id in stale:
                del self.storage.qr_codes[qr_code_id]
            return self._store(user_id, token, expires_at, document_id)

    async def delete(self, qr_code_id: int) -> bool:
        return self.storage.qr_codes.pop(qr_code_id, None) is not None

class MemoryMedicalConditionRepository(MedicalConditionRepository):

    def __init__(self, storage: MemoryStorage):
        self.storage = storage

    async def get(self, user_id: int) -> Optional[MedicalCondition]:
        return next((c for c in self.storage.conditions.values() if c.user_id == user_id), None)

    async def upsert(self, user_id: int, summary: str) -> MedicalCondition:
        condition = await self.get(user_id)
        if condition is None:
            condition = MedicalCondition(id=self.storage.next_id("conditions"), user_id=user_id)
            self.storage.conditions[condition.id] = condition
        condition.summary = summary
        condition.last_updated = datetime.utcnow()
        return condition

def memory_repositories(storage: Optional[MemoryStorage] = None) -> Repositories:
    """Build the repository bundle over a shared in-memory storage"""
    storage = storage or MemoryStorage()
    return Repositories(
        users=MemoryUserRepository(storage),
        categories=MemoryCategoryRepository(storage),
        documents=MemoryDocumentRepository(storage),
        tokens=MemoryTokenRepository(storage),
        conditions=MemoryMedicalConditionRepository(storage),
    )
