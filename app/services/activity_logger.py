"""
Access logging service for auditing QR code issuance and record sharing
"""

from sqlalchemy.orm import Session
from fastapi import Request
from typing import Optional
import asyncio
import logging

from app.models.activity_log import AccessLog
from app.services.qr_code_service import token_prefix

logger = logging.getLogger(__name__)

class AccessLogger:
    """Service for writing access audit rows"""

    def __init__(self, db: Session):
        self.db = db

    def _write(self, access_log: AccessLog) -> AccessLog:
        self.db.add(access_log)
        self.db.commit()
        self.db.refresh(access_log)
        return access_log

    async def log_access(
        self,
        request: Request,
        status_code: int,
        user_id: Optional[int] = None,
        token: Optional[str] = None,
        error_message: Optional[str] = None
    ) -> Optional[AccessLog]:
        """Record one access attempt; a failed write never fails the request"""

        try:
            endpoint = str(request.url.path)
            if token:
                endpoint = endpoint.replace(token, f"{token_prefix(token)}...")

            access_log = AccessLog(
                endpoint=endpoint,
                method=request.method,
                status_code=status_code,
                user_id=user_id,
                token_prefix=token_prefix(token),
                ip_address=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent"),
                error_message=error_message
            )

            return await asyncio.to_thread(self._write, access_log)

        except Exception as e:
            logger.error(f"Failed to write access log: {e}")

            try:
                self.db.rollback()
            except Exception as rollback_error:
                logger.error(f"Rollback after access log failure also failed: {rollback_error}")

            return None

    def _recent_access(self, user_id: int, limit: int) -> list[AccessLog]:
        return (
            self.db.query(AccessLog)
            .filter(AccessLog.user_id == user_id)
            .order_by(AccessLog.created_at.desc(), AccessLog.id.desc())
            .limit(limit)
            .all()
        )

    async def get_recent_access(self, user_id: int, limit: int = 100) -> list[AccessLog]:
        """Most recent audit rows concerning one user's records"""
        return await asyncio.to_thread(self._recent_access, user_id, limit)
