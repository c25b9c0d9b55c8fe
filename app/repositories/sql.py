"""
SQLAlchemy-backed repositories

Session work is blocking, so each operation runs in a worker thread via
asyncio.to_thread and the event loop stays free for other requests. A
session is still only ever used by one request at a time.
"""

from fastapi import Depends
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime
from typing import Optional
import asyncio
import logging

from app.database import get_db
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

logger = logging.getLogger(__name__)

class SqlRepository:
    """Shared session handling for the SQL repositories"""

    def __init__(self, db: Session):
        self.db = db

    async def _run(self, fn, *args):
        return await asyncio.to_thread(fn, *args)

class SqlUserRepository(SqlRepository, UserRepository):

    def _create_user(self, username, hashed_password, display_name, role, email) -> User:
        try:
            db_user = User(
                username=username.lower(),
                hashed_password=hashed_password,
                display_name=display_name,
                role=role,
                email=email.lower() if email else None
            )
            self.db.add(db_user)
            self.db.commit()
            self.db.refresh(db_user)
            return db_user
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to create user: {str(e)}", e)

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self._run(lambda: self.db.query(User).filter(User.id == user_id).first())

    async def get_user_by_username(self, username: str) -> Optional[User]:
        return await self._run(
            lambda: self.db.query(User).filter(User.username == username.lower()).first()
        )

    async def create_user(self, username, hashed_password, display_name, role, email=None) -> User:
        return await self._run(self._create_user, username, hashed_password, display_name, role, email)

    async def get_users_by_role(self, role: str) -> list[User]:
        return await self._run(
            lambda: self.db.query(User).filter(User.role == role).order_by(User.display_name).all()
        )

class SqlCategoryRepository(SqlRepository, CategoryRepository):

    def _create_category(self, user_id: int, name: str) -> Category:
        try:
            category = Category(user_id=user_id, name=name, count=0)
            self.db.add(category)
            self.db.commit()
            self.db.refresh(category)
            return category
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to create category: {str(e)}", e)

    async def get_categories(self, user_id: int) -> list[Category]:
        return await self._run(
            lambda: self.db.query(Category).filter(Category.user_id == user_id).order_by(Category.id).all()
        )

    async def get_category(self, category_id: int) -> Optional[Category]:
        return await self._run(lambda: self.db.query(Category).filter(Category.id == category_id).first())

    async def create_category(self, user_id: int, name: str) -> Category:
        return await self._run(self._create_category, user_id, name)

class SqlDocumentRepository(SqlRepository, DocumentRepository):

    def _adjust_count(self, category_id: int, delta: int) -> None:
        # Single UPDATE so concurrent writers never lose an increment
        self.db.query(Category).filter(Category.id == category_id).update(
            {Category.count: Category.count + delta}, synchronize_session=False
        )
        if delta < 0:
            self.db.query(Category).filter(
                Category.id == category_id, Category.count < 0
            ).update({Category.count: 0}, synchronize_session=False)

    def _list(self, *criteria) -> list[Document]:
        return (
            self.db.query(Document)
            .filter(*criteria)
            .order_by(Document.date.desc(), Document.id.desc())
            .all()
        )

    def _create_document(self, user_id, category_id, title, file_data, date, notes) -> Document:
        try:
            document = Document(
                user_id=user_id,
                category_id=category_id,
                title=title,
                file_data=file_data,
                date=date,
                notes=notes
            )
            self.db.add(document)
            self.db.flush()
            self._adjust_count(category_id, 1)
            self.db.commit()
            self.db.refresh(document)
            return document
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to create document: {str(e)}", e)

    def _update_document(self, document_id: int, changes: dict) -> Optional[Document]:
        try:
            document = self.db.query(Document).filter(Document.id == document_id).first()
            if not document:
                return None

            new_category_id = changes.get("category_id")
            if new_category_id and new_category_id != document.category_id:
                self._adjust_count(document.category_id, -1)
                self._adjust_count(new_category_id, 1)

            for field, value in changes.items():
                setattr(document, field, value)

            self.db.commit()
            self.db.refresh(document)
            return document
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to update document {document_id}: {str(e)}", e)

    def _delete_document(self, document_id: int) -> bool:
        try:
            document = self.db.query(Document).filter(Document.id == document_id).first()
            if not document:
                return False

            self._adjust_count(document.category_id, -1)
            self.db.delete(document)
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to delete document {document_id}: {str(e)}", e)

    async def get_documents_for_user(self, user_id: int) -> list[Document]:
        return await self._run(self._list, Document.user_id == user_id)

    async def get_documents_by_category(self, user_id: int, category_id: int) -> list[Document]:
        return await self._run(self._list, Document.user_id == user_id, Document.category_id == category_id)

    async def get_document(self, document_id: int) -> Optional[Document]:
        return await self._run(lambda: self.db.query(Document).filter(Document.id == document_id).first())

    async def create_document(self, user_id, category_id, title, file_data, date, notes=None) -> Document:
        return await self._run(self._create_document, user_id, category_id, title, file_data, date, notes)

    async def update_document(self, document_id: int, changes: dict) -> Optional[Document]:
        return await self._run(self._update_document, document_id, changes)

    async def delete_document(self, document_id: int) -> bool:
        return await self._run(self._delete_document, document_id)

class SqlTokenRepository(SqlRepository, TokenRepository):

    def _create(self, user_id, token, expires_at, document_id) -> QrCode:
        try:
            qr_code = QrCode(user_id=user_id, token=token, expires_at=expires_at, document_id=document_id)
            self.db.add(qr_code)
            self.db.commit()
            self.db.refresh(qr_code)
            return qr_code
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to store QR code: {str(e)}", e)

    def _replace_for_user(self, user_id, token, expires_at, document_id) -> QrCode:
        # A racing issuance for the same user trips the unique user_id
        # constraint; retry once so the later request wins.
        for attempt in range(2):
            try:
                self.db.query(QrCode).filter(QrCode.user_id == user_id).delete(synchronize_session=False)
                qr_code = QrCode(user_id=user_id, token=token, expires_at=expires_at, document_id=document_id)
                self.db.add(qr_code)
                self.db.commit()
                self.db.refresh(qr_code)
                return qr_code
            except IntegrityError as e:
                self.db.rollback()
                if attempt:
                    raise DatabaseError(f"Failed to replace QR code for user {user_id}", e)
                logger.warning(f"Concurrent QR code issuance for user {user_id}, retrying")
            except SQLAlchemyError as e:
                self.db.rollback()
                raise DatabaseError(f"Failed to replace QR code for user {user_id}: {str(e)}", e)

    def _delete(self, qr_code_id: int) -> bool:
        try:
            deleted = self.db.query(QrCode).filter(QrCode.id == qr_code_id).delete(synchronize_session=False)
            self.db.commit()
            return deleted > 0
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to delete QR code {qr_code_id}: {str(e)}", e)

    async def get_by_user_id(self, user_id: int) -> Optional[QrCode]:
        return await self._run(lambda: self.db.query(QrCode).filter(QrCode.user_id == user_id).first())

    async def get_by_token(self, token: str) -> Optional[QrCode]:
        return await self._run(lambda: self.db.query(QrCode).filter(QrCode.token == token).first())

    async def create(self, user_id, token, expires_at, document_id=None) -> QrCode:
        return await self._run(self._create, user_id, token, expires_at, document_id)

    async def replace_for_user(
        self,
        user_id: int,
        token: str,
        expires_at: Optional[datetime],
        document_id: Optional[int] = None
    ) -> QrCode:
        return await self._run(self._replace_for_user, user_id, token, expires_at, document_id)

    async def delete(self, qr_code_id: int) -> bool:
        return await self._run(self._delete, qr_code_id)

class SqlMedicalConditionRepository(SqlRepository, MedicalConditionRepository):

    def _upsert(self, user_id: int, summary: str) -> MedicalCondition:
        try:
            condition = self.db.query(MedicalCondition).filter(MedicalCondition.user_id == user_id).first()
            if condition:
                condition.summary = summary
                condition.last_updated = datetime.utcnow()
            else:
                condition = MedicalCondition(user_id=user_id, summary=summary)
                self.db.add(condition)
            self.db.commit()
            self.db.refresh(condition)
            return condition
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to save medical condition for user {user_id}: {str(e)}", e)

    async def get(self, user_id: int) -> Optional[MedicalCondition]:
        return await self._run(
            lambda: self.db.query(MedicalCondition).filter(MedicalCondition.user_id == user_id).first()
        )

    async def upsert(self, user_id: int, summary: str) -> MedicalCondition:
        return await self._run(self._upsert, user_id, summary)

def sql_repositories(db: Session) -> Repositories:
    """Build the repository bundle for one database session"""
    return Repositories(
        users=SqlUserRepository(db),
        categories=SqlCategoryRepository(db),
        documents=SqlDocumentRepository(db),
        tokens=SqlTokenRepository(db),
        conditions=SqlMedicalConditionRepository(db),
    )

def get_repositories(db: Session = Depends(get_db)) -> Repositories:
    """FastAPI dependency: repositories bound to the request's session"""
    return sql_repositories(db)
