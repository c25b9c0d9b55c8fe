"""
Per-user endpoints: patient list, categories, documents, condition summary
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import Optional
import logging

from app.database import get_db
from app.limiter import limiter
from app.repositories.base import Repositories
from app.repositories.sql import get_repositories
from app.schemas.document import CategoryResponse, DocumentResponse
from app.schemas.medical_condition import MedicalConditionUpsert, MedicalConditionResponse
from app.schemas.qr_code import AccessLogResponse
from app.schemas.user import PublicUser
from app.services.activity_logger import AccessLogger
from app.services.document_service import DocumentService
from app.services.medical_condition_service import MedicalConditionService
from app.services.user_service import UserService
from app.auth.auth_handler import any_user_required, doctor_required, ensure_owner
from app.utils.error_handler import RecordAccessError

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/patients", response_model=list[PublicUser])
@limiter.limit("30/minute")
async def list_patients(
    request: Request,
    current_user: dict = Depends(doctor_required),
    repos: Repositories = Depends(get_repositories)
):
    """List patients for the doctor dashboard (Doctor only)"""
    try:
        patients = await UserService(repos).get_patients()
        return [PublicUser.model_validate(patient) for patient in patients]

    except Exception as e:
        logger.error(f"Failed to list patients: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve patients")

@router.get("/{user_id}/categories", response_model=list[CategoryResponse])
@limiter.limit("30/minute")
async def get_categories(
    request: Request,
    user_id: int,
    current_user: dict = Depends(any_user_required),
    repos: Repositories = Depends(get_repositories)
):
    """Get the user's document categories with their counts"""
    try:
        ensure_owner(current_user, user_id)
        return await DocumentService(repos).get_categories(user_id)

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Failed to get categories for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve categories")

@router.get("/{user_id}/documents", response_model=list[DocumentResponse])
@limiter.limit("30/minute")
async def get_documents(
    request: Request,
    user_id: int,
    category_id: Optional[int] = Query(None, alias="categoryId", ge=1, description="Only this category"),
    current_user: dict = Depends(any_user_required),
    repos: Repositories = Depends(get_repositories)
):
    """Get the user's documents, optionally filtered by category"""
    try:
        ensure_owner(current_user, user_id)
        return await DocumentService(repos).get_documents(user_id, category_id)

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Failed to get documents for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve documents")

@router.get("/{user_id}/medical-condition", response_model=MedicalConditionResponse)
@limiter.limit("30/minute")
async def get_medical_condition(
    request: Request,
    user_id: int,
    current_user: dict = Depends(any_user_required),
    repos: Repositories = Depends(get_repositories)
):
    """Get a patient's condition summary (the patient, or any doctor)"""
    try:
        if current_user["role"] != "doctor":
            ensure_owner(current_user, user_id)
        return await MedicalConditionService(repos).get_condition(user_id)

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Failed to get medical condition for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve medical condition")

@router.post("/{user_id}/medical-condition", response_model=MedicalConditionResponse)
@limiter.limit("10/minute")
async def save_medical_condition(
    request: Request,
    user_id: int,
    condition: MedicalConditionUpsert,
    current_user: dict = Depends(any_user_required),
    repos: Repositories = Depends(get_repositories)
):
    """Create or replace the user's condition summary"""
    try:
        ensure_owner(current_user, user_id)
        return await MedicalConditionService(repos).save_condition(user_id, condition.summary)

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Failed to save medical condition for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Error saving medical condition")

@router.get("/{user_id}/access-log", response_model=list[AccessLogResponse])
@limiter.limit("30/minute")
async def get_access_log(
    request: Request,
    user_id: int,
    limit: int = Query(50, ge=1, le=500),
    current_user: dict = Depends(any_user_required),
    db=Depends(get_db)
):
    """Who generated or scanned the user's QR codes, newest first"""
    ensure_owner(current_user, user_id)
    try:
        return await AccessLogger(db).get_recent_access(user_id, limit)

    except Exception as e:
        logger.error(f"Failed to get access log for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve access log")
