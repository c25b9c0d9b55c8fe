"""
Error types and handling utilities shared by the services and routers
"""

import uuid
import traceback
import logging
from typing import Optional
from datetime import datetime
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

class ErrorContext:
    """Context object for tracking error information across the request lifecycle"""

    def __init__(self, request: Request):
        self.request_id = str(uuid.uuid4())
        self.request = request
        self.endpoint = str(request.url.path)
        self.method = request.method
        self.client_ip = self._get_client_ip()
        self.user_agent = request.headers.get("user-agent")
        self.timestamp = datetime.utcnow()

    def _get_client_ip(self) -> Optional[str]:
        """Extract client IP from request headers"""
        if "x-forwarded-for" in self.request.headers:
            return self.request.headers["x-forwarded-for"].split(",")[0].strip()
        elif "x-real-ip" in self.request.headers:
            return self.request.headers["x-real-ip"]
        elif self.request.client:
            return self.request.client.host
        return None

class DatabaseError(Exception):
    """Custom exception for database-related errors"""
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)

class RecordAccessError(Exception):
    """Base class for structured errors surfaced to API callers"""
    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

class NotFoundError(RecordAccessError):
    """A referenced user, category or document does not exist"""
    status_code = 404
    error_code = "NOT_FOUND"

class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")

class TokenNotFoundError(RecordAccessError):
    status_code = 404
    error_code = "TOKEN_NOT_FOUND"

    def __init__(self, message: str = "QR code not found"):
        super().__init__(message)

class TokenExpiredError(RecordAccessError):
    """The token exists but its expiry has passed; the patient must regenerate it"""
    status_code = 410
    error_code = "TOKEN_EXPIRED"

    def __init__(self, message: str = "QR code has expired"):
        super().__init__(message)

class ValidationError(RecordAccessError):
    status_code = 400
    error_code = "VALIDATION_ERROR"

class AuthFailure(RecordAccessError):
    status_code = 401
    error_code = "AUTH_FAILURE"

class ConflictError(RecordAccessError):
    status_code = 409
    error_code = "CONFLICT"

class ErrorHandler:
    """Centralized error handling service"""

    @staticmethod
    def access_error_response(error_context: ErrorContext, error: RecordAccessError) -> JSONResponse:
        """Render a structured domain error as {message, code}"""
        logger.info(
            f"{error.error_code} in {error_context.method} {error_context.endpoint}: {error.message}"
        )
        return JSONResponse(
            status_code=error.status_code,
            content={"message": error.message, "code": error.error_code}
        )

    @staticmethod
    def create_error_response(
        error_context: ErrorContext,
        error: Exception,
        status_code: int = 500
    ) -> JSONResponse:
        """Create a standardized response for unexpected errors"""

        error_data = {
            "error": {
                "code": ErrorHandler._get_error_code(error),
                "message": ErrorHandler._get_user_friendly_message(error),
                "error_id": error_context.request_id,
                "timestamp": error_context.timestamp.isoformat(),
                "endpoint": error_context.endpoint,
                "method": error_context.method
            }
        }

        ErrorHandler._log_error(error_context, error, status_code)

        return JSONResponse(
            status_code=status_code,
            content=error_data
        )

    @staticmethod
    def _get_error_code(error: Exception) -> str:
        """Generate appropriate error codes based on exception type"""
        if isinstance(error, HTTPException):
            return f"HTTP_{error.status_code}"
        elif isinstance(error, RecordAccessError):
            return error.error_code
        elif isinstance(error, DatabaseError):
            return "DATABASE_ERROR"
        else:
            return "INTERNAL_ERROR"

    @staticmethod
    def _get_user_friendly_message(error: Exception) -> str:
        """Generate user-friendly error messages"""
        if isinstance(error, HTTPException):
            return error.detail
        elif isinstance(error, RecordAccessError):
            return error.message
        elif isinstance(error, DatabaseError):
            return "A database error occurred. Please try again later."
        else:
            return "An unexpected error occurred. Please try again later."

    @staticmethod
    def _log_error(error_context: ErrorContext, error: Exception, status_code: int):
        """Log error with comprehensive context"""
        logger.error(
            f"Error {error_context.request_id}: {type(error).__name__} in {error_context.method} {error_context.endpoint}",
            extra={
                "request_id": error_context.request_id,
                "endpoint": error_context.endpoint,
                "method": error_context.method,
                "status_code": status_code,
                "client_ip": error_context.client_ip,
                "user_agent": error_context.user_agent,
                "error_type": type(error).__name__,
                "error_message": str(error),
                "stack_trace": traceback.format_exc()
            },
            exc_info=True
        )

class DatabaseManager:
    """Context manager for database work outside of a request (startup seeding)"""

    def __init__(self, db_session_factory):
        self.db_session_factory = db_session_factory
        self.db = None

    def __enter__(self) -> Session:
        try:
            self.db = self.db_session_factory()
            return self.db
        except Exception as e:
            raise DatabaseError(f"Failed to create database session: {str(e)}", e)

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.db:
            try:
                if exc_type is None:
                    self.db.commit()
                else:
                    self.db.rollback()
            except SQLAlchemyError as e:
                logger.error(f"Database transaction error: {e}")
                self.db.rollback()
                raise DatabaseError(f"Database transaction failed: {str(e)}", e)
            finally:
                self.db.close()
