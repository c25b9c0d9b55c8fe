"""
QR code sharing endpoints
Patients obtain a token for their records; doctors resolve it
"""

from fastapi import APIRouter, Depends, HTTPException, Request
import logging

from app.database import get_db
from app.limiter import limiter
from app.repositories.base import Repositories
from app.repositories.sql import get_repositories
from app.schemas.qr_code import QrCodeResponse, SharedRecord
from app.services.activity_logger import AccessLogger
from app.services.qr_code_service import TokenIssuer, TokenResolver, token_prefix
from app.auth.auth_handler import patient_required, ensure_owner
from app.utils.error_handler import RecordAccessError

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/users/{user_id}/qrcode", response_model=QrCodeResponse)
@limiter.limit("20/minute")
async def get_qr_code(
    request: Request,
    user_id: int,
    current_user: dict = Depends(patient_required),
    repos: Repositories = Depends(get_repositories),
    db=Depends(get_db)
):
    """Return the patient's live QR code token, minting one if none is live"""
    try:
        ensure_owner(current_user, user_id)
        qr_code = QrCodeResponse.model_validate(await TokenIssuer(repos).current_or_issue(user_id))

        await AccessLogger(db).log_access(request, 200, user_id=user_id, token=qr_code.token)
        return qr_code

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Error getting QR code for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Error getting QR code")

@router.post("/users/{user_id}/qrcode", response_model=QrCodeResponse, status_code=201)
@limiter.limit("10/minute")
async def regenerate_qr_code(
    request: Request,
    user_id: int,
    current_user: dict = Depends(patient_required),
    repos: Repositories = Depends(get_repositories),
    db=Depends(get_db)
):
    """Mint a new QR code token; the previous one stops working immediately"""
    try:
        ensure_owner(current_user, user_id)
        qr_code = QrCodeResponse.model_validate(await TokenIssuer(repos).issue(user_id))

        await AccessLogger(db).log_access(request, 201, user_id=user_id, token=qr_code.token)
        return qr_code

    except (HTTPException, RecordAccessError):
        raise
    except Exception as e:
        logger.error(f"Error regenerating QR code for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Error generating QR code")

@router.get("/qrcode/{token}", response_model=SharedRecord)
@limiter.limit("30/minute")
async def resolve_qr_code(
    request: Request,
    token: str,
    repos: Repositories = Depends(get_repositories),
    db=Depends(get_db)
):
    """Resolve a scanned token to the patient's profile and documents.

    The token itself is the credential, so no session is required.
    Unknown tokens answer 404 and expired ones 410.
    """
    access_logger = AccessLogger(db)
    try:
        record = await TokenResolver(repos).resolve(token)

        await access_logger.log_access(request, 200, user_id=record.user.id, token=token)
        logger.info(f"QR code {token_prefix(token)}... resolved to user {record.user.id}")
        return record

    except RecordAccessError as e:
        await access_logger.log_access(request, e.status_code, token=token, error_message=e.message)
        raise
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error accessing patient data for QR code {token_prefix(token)}...: {e}")
        raise HTTPException(status_code=500, detail="Error accessing patient data")
