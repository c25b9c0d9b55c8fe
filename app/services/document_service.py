"""
Document and category service
Keeps each category's document count in step with the documents filed under it
"""

from typing import Optional
import logging

from app.models.category import Category
from app.models.document import Document
from app.repositories.base import Repositories
from app.schemas.document import DocumentCreate, DocumentUpdate, StoredFile
from app.utils.error_handler import NotFoundError, UserNotFoundError

logger = logging.getLogger(__name__)

class DocumentService:
    """Service for a patient's documents and categories"""

    def __init__(self, repos: Repositories):
        self.repos = repos

    async def _require_user(self, user_id: int) -> None:
        if await self.repos.users.get_user(user_id) is None:
            raise UserNotFoundError(user_id)

    async def _owned_category(self, user_id: int, category_id: int) -> Category:
        category = await self.repos.categories.get_category(category_id)
        # another user's category is reported exactly like a missing one
        if category is None or category.user_id != user_id:
            raise NotFoundError(f"Category {category_id} not found")
        return category

    async def get_categories(self, user_id: int) -> list[Category]:
        await self._require_user(user_id)
        return await self.repos.categories.get_categories(user_id)

    async def create_category(self, user_id: int, name: str) -> Category:
        await self._require_user(user_id)
        category = await self.repos.categories.create_category(user_id, name)
        logger.info(f"Created category {category.id} ('{name}') for user {user_id}")
        return category

    async def get_documents(self, user_id: int, category_id: Optional[int] = None) -> list[Document]:
        await self._require_user(user_id)
        if category_id:
            return await self.repos.documents.get_documents_by_category(user_id, category_id)
        return await self.repos.documents.get_documents_for_user(user_id)

    async def get_document(self, user_id: int, document_id: int) -> Document:
        """Fetch one of the user's documents"""
        document = await self.repos.documents.get_document(document_id)
        if document is None or document.user_id != user_id:
            raise NotFoundError("Document not found")
        return document

    async def create_document(self, user_id: int, document_data: DocumentCreate) -> Document:
        await self._require_user(user_id)
        await self._owned_category(user_id, document_data.category_id)

        document = await self.repos.documents.create_document(
            user_id=user_id,
            category_id=document_data.category_id,
            title=document_data.title,
            file_data=document_data.file.model_dump(),
            date=document_data.date,
            notes=document_data.notes
        )

        logger.info(
            f"Created document {document.id} for user {user_id} "
            f"({document_data.file.mime_type}, {document_data.file.size_bytes} bytes)"
        )
        return document

    async def update_document(self, user_id: int, document_id: int, document_data: DocumentUpdate) -> Document:
        await self.get_document(user_id, document_id)

        # notes is the only field that can be cleared with an explicit null
        changes = {
            field: value
            for field, value in document_data.model_dump(exclude_unset=True).items()
            if value is not None or field == "notes"
        }
        if "category_id" in changes:
            await self._owned_category(user_id, changes["category_id"])

        document = await self.repos.documents.update_document(document_id, changes)
        if document is None:
            raise NotFoundError("Document not found")

        logger.info(f"Updated document {document_id} ({', '.join(changes) or 'no changes'})")
        return document

    async def delete_document(self, user_id: int, document_id: int) -> None:
        await self.get_document(user_id, document_id)
        if not await self.repos.documents.delete_document(document_id):
            raise NotFoundError("Document not found")
        logger.info(f"Deleted document {document_id} for user {user_id}")

    async def get_file(self, user_id: int, document_id: int) -> tuple[StoredFile, bytes]:
        """Stored payload and its decoded bytes, for download"""
        document = await self.get_document(user_id, document_id)
        payload = StoredFile.model_validate(document.file_data)
        return payload, payload.content()
