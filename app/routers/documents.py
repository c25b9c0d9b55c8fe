"""
Document and category endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Request, Form
from fastapi.responses import Response
from pydantic import ValidationError as SchemaValidationError
from typing import Optional
import logging

from app.config import get_settings
from app.limiter import limiter
from app.repositories.base import Repositories
from app.repositories.sql import get_repositories
from app.schemas.document import (
    CategoryCreate, CategoryResponse, DocumentCreate, DocumentUpdate,
    DocumentResponse, FilePayload
)
from app.services.document_service import DocumentService
from app.auth.auth_handler import any_user_required, patient_required
from app.utils.error_handler import RecordAccessError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/categories", response_model=CategoryResponse, status_code=201)
@limiter.limit("20/minute")
async def create_category(
    request: Request,
    category: CategoryCreate,
    current_user: dict = Depends(patient_required),
    repos: Repositories = Depends(get_repositories)
):
    """Create a category for the current patient"""
    try:
        return await DocumentService(repos).create_category(current_user["user_id"], category.name)

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Failed to create category: {e}")
        raise HTTPException(status_code=500, detail="Failed to create category")

@router.post("/documents", response_model=DocumentResponse, status_code=201)
@limiter.limit("10/minute")
async def create_document(
    request: Request,
    document: DocumentCreate,
    current_user: dict = Depends(patient_required),
    repos: Repositories = Depends(get_repositories)
):
    """Create a document from a JSON body carrying a base64 file payload"""
    try:
        return await DocumentService(repos).create_document(current_user["user_id"], document)

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Failed to create document: {e}")
        raise HTTPException(status_code=500, detail="Failed to create document")

@router.post("/documents/upload", response_model=DocumentResponse, status_code=201)
@limiter.limit("5/minute")
async def upload_document(
    request: Request,
    file: UploadFile = File(..., description="PDF, JPEG or PNG file"),
    title: str = Form(...),
    category_id: int = Form(...),
    date: str = Form(..., description="Date of the record (YYYY-MM-DD)"),
    notes: Optional[str] = Form(None),
    current_user: dict = Depends(patient_required),
    repos: Repositories = Depends(get_repositories)
):
    """Upload a file as multipart form data"""
    try:
        max_bytes = get_settings().max_upload_bytes
        # read one byte past the limit so oversized uploads are caught without buffering them whole
        content = await file.read(max_bytes + 1)

        if not content:
            raise ValidationError("File is empty")
        if len(content) > max_bytes:
            raise ValidationError(f"File size must be at most {max_bytes} bytes")

        try:
            document = DocumentCreate(
                title=title,
                category_id=category_id,
                date=date,
                notes=notes,
                file=FilePayload.from_bytes(file.filename or "upload", file.content_type or "", content)
            )
        except SchemaValidationError as e:
            raise ValidationError("; ".join(err["msg"] for err in e.errors()))

        return await DocumentService(repos).create_document(current_user["user_id"], document)

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Document upload failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to upload document")

@router.put("/documents/{document_id}", response_model=DocumentResponse)
@limiter.limit("10/minute")
async def update_document(
    request: Request,
    document_id: int,
    document: DocumentUpdate,
    current_user: dict = Depends(patient_required),
    repos: Repositories = Depends(get_repositories)
):
    """Edit a document; moving it to another category updates both counts"""
    try:
        return await DocumentService(repos).update_document(current_user["user_id"], document_id, document)

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Failed to update document {document_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update document")

@router.delete("/documents/{document_id}")
@limiter.limit("10/minute")
async def delete_document(
    request: Request,
    document_id: int,
    current_user: dict = Depends(patient_required),
    repos: Repositories = Depends(get_repositories)
):
    """Delete a document"""
    try:
        await DocumentService(repos).delete_document(current_user["user_id"], document_id)
        return {"message": "Document deleted successfully"}

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Failed to delete document {document_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete document")

@router.get("/documents/{document_id}/download")
@limiter.limit("30/minute")
async def download_document(
    request: Request,
    document_id: int,
    current_user: dict = Depends(any_user_required),
    repos: Repositories = Depends(get_repositories)
):
    """Download the original file"""
    try:
        payload, content = await DocumentService(repos).get_file(current_user["user_id"], document_id)
        return Response(
            content=content,
            media_type=payload.mime_type,
            headers={"Content-Disposition": f'attachment; filename="{payload.file_name}"'}
        )

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Failed to download document {document_id}: {e}")
        raise HTTPException(status_code=500, detail="Error downloading file")
