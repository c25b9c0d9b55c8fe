"""
Demo seed data: a patient, a doctor and the patient's starter categories.
Runs on startup when SEED_DEMO_DATA is set and the demo patient is missing.
"""
import logging

from app.auth.auth_handler import AuthHandler
from app.repositories.base import Repositories

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    {
        "username": "patient",
        "display_name": "John Doe",
        "email": "patient@example.com",
        "role": "patient",
    },
    {
        "username": "doctor",
        "display_name": "Dr. Jane Smith",
        "email": "doctor@example.com",
        "role": "doctor",
    },
]

DEFAULT_CATEGORIES = ["Lab Reports", "Prescriptions", "X-Rays", "Vaccinations"]

DEMO_CONDITION_SUMMARY = (
    "Patient has a history of hypertension and mild asthma. Currently on medication "
    "for blood pressure management. Last checkup showed normal vitals with slight "
    "concerns about cholesterol levels."
)


async def seed_demo_data(repos: Repositories) -> bool:
    """Create the demo accounts; returns False when they already exist."""
    if await repos.users.get_user_by_username("patient"):
        logger.info("Demo data already present. Skipping seeding.")
        return False

    auth_handler = AuthHandler()
    created = {}
    for user_data in DEMO_USERS:
        user = await repos.users.create_user(
            hashed_password=auth_handler.get_password_hash(DEMO_PASSWORD),
            **user_data,
        )
        created[user.role] = user
        logger.info(f"Created {user.role} user: {user.username}")

    patient = created["patient"]
    for name in DEFAULT_CATEGORIES:
        await repos.categories.create_category(patient.id, name)
    await repos.conditions.upsert(patient.id, DEMO_CONDITION_SUMMARY)

    logger.info(f"Seeded demo data for patient {patient.id}")
    return True
