"""
QR code sharing service
Issues capability tokens for a patient's records and resolves them for doctors
"""

from datetime import datetime, timedelta
from typing import Callable, Optional
import logging
import re
import secrets

from app.config import get_settings
from app.models.qr_code import QrCode
from app.repositories.base import Repositories
from app.schemas.document import DocumentResponse
from app.schemas.qr_code import SharedRecord
from app.schemas.user import PublicUser
from app.utils.error_handler import (
    TokenExpiredError, TokenNotFoundError, UserNotFoundError, ValidationError
)

logger = logging.getLogger(__name__)

TOKEN_BYTES = 16  # 128 bits, hex encoded to 32 characters
DEMO_TOKEN = "patient-qr-code"
_DEMO_TOKEN_WITH_ID = re.compile(r"^patient-qr-code-(\d{1,9})$")

def token_prefix(token: Optional[str]) -> Optional[str]:
    """Loggable part of a token; the full value is a bearer credential"""
    return token[:8] if token else None

def is_expired(qr_code: QrCode, now: datetime) -> bool:
    return qr_code.expires_at is not None and now > qr_code.expires_at

def is_demo_token(token: str, demo_user_id: int = 1) -> Optional[int]:
    """Map a well-known demo token to the seeded account it stands for.

    ``patient-qr-code`` maps to ``demo_user_id`` and ``patient-qr-code-<n>``
    maps to user ``n``. Every other string returns None. Only consulted after
    the token store has missed, and only when demo tokens are enabled.
    """
    if token == DEMO_TOKEN:
        return demo_user_id
    match = _DEMO_TOKEN_WITH_ID.match(token)
    if match:
        user_id = int(match.group(1))
        return user_id if user_id > 0 else None
    return None

class TokenIssuer:
    """Mints sharing tokens; the newest token per user is the only one that resolves"""

    def __init__(
        self,
        repos: Repositories,
        ttl_days: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.repos = repos
        self.ttl = timedelta(days=ttl_days if ttl_days is not None else get_settings().qr_token_ttl_days)
        self.clock = clock

    async def _require_user(self, user_id: int) -> None:
        if not isinstance(user_id, int) or isinstance(user_id, bool) or user_id < 1:
            raise ValidationError(f"Invalid user ID: {user_id!r}")
        if await self.repos.users.get_user(user_id) is None:
            raise UserNotFoundError(user_id)

    async def issue(self, user_id: int) -> QrCode:
        """Mint a new token for the user, invalidating any previous one"""
        await self._require_user(user_id)

        token = secrets.token_hex(TOKEN_BYTES)
        expires_at = self.clock() + self.ttl

        # replace_for_user returns only after the old token is gone
        qr_code = await self.repos.tokens.replace_for_user(user_id, token, expires_at)

        logger.info(f"Issued QR code {token_prefix(token)}... for user {user_id}, expires {expires_at.isoformat()}")
        return qr_code

    async def current_or_issue(self, user_id: int) -> QrCode:
        """Return the user's live token, minting a new one if none is live"""
        await self._require_user(user_id)

        existing = await self.repos.tokens.get_by_user_id(user_id)
        if existing is not None and not is_expired(existing, self.clock()):
            return existing

        if existing is not None:
            logger.info(f"QR code {token_prefix(existing.token)}... for user {user_id} expired, reissuing")
        return await self.issue(user_id)

class TokenResolver:
    """Turns a scanned token into a read-only snapshot of the patient's records"""

    def __init__(
        self,
        repos: Repositories,
        demo_tokens_enabled: Optional[bool] = None,
        demo_user_id: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        settings = get_settings()
        self.repos = repos
        self.demo_tokens_enabled = (
            settings.demo_tokens_enabled if demo_tokens_enabled is None else demo_tokens_enabled
        )
        self.demo_user_id = settings.demo_user_id if demo_user_id is None else demo_user_id
        self.clock = clock

    async def _owner_id(self, token: str) -> int:
        qr_code = await self.repos.tokens.get_by_token(token)

        if qr_code is None:
            demo_user_id = is_demo_token(token, self.demo_user_id) if self.demo_tokens_enabled else None
            if demo_user_id is None:
                raise TokenNotFoundError()
            logger.info(f"Resolving demo token for user {demo_user_id}")
            return demo_user_id

        if is_expired(qr_code, self.clock()):
            raise TokenExpiredError()

        return qr_code.user_id

    async def resolve(self, token: str) -> SharedRecord:
        if not token:
            raise TokenNotFoundError()

        user_id = await self._owner_id(token)

        user = await self.repos.users.get_user(user_id)
        if user is None:
            logger.warning(f"QR code {token_prefix(token)}... points at missing user {user_id}")
            raise UserNotFoundError(user_id)

        documents = await self.repos.documents.get_documents_for_user(user_id)

        return SharedRecord(
            user=PublicUser.model_validate(user),
            documents=[DocumentResponse.model_validate(document) for document in documents]
        )
