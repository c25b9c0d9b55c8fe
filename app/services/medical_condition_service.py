"""
Medical condition summary service
"""

import logging

from app.models.medical_condition import MedicalCondition
from app.repositories.base import Repositories
from app.utils.error_handler import NotFoundError, UserNotFoundError

logger = logging.getLogger(__name__)

class MedicalConditionService:

    def __init__(self, repos: Repositories):
        self.repos = repos

    async def get_condition(self, user_id: int) -> MedicalCondition:
        condition = await self.repos.conditions.get(user_id)
        if condition is None:
            raise NotFoundError("Medical condition not found")
        return condition

    async def save_condition(self, user_id: int, summary: str) -> MedicalCondition:
        """Create the user's summary or replace the existing one"""
        if await self.repos.users.get_user(user_id) is None:
            raise UserNotFoundError(user_id)
        condition = await self.repos.conditions.upsert(user_id, summary)
        logger.info(f"Saved medical condition summary for user {user_id}")
        return condition
