"""
Demo seed data
"""

from app.auth.auth_handler import AuthHandler
from app.seeds import DEFAULT_CATEGORIES, DEMO_PASSWORD, seed_demo_data

from conftest import run

class TestSeedDemoData:

    def test_seed_creates_demo_accounts(self, repos):
        assert run(seed_demo_data(repos)) is True

        patient = run(repos.users.get_user_by_username("patient"))
        doctor = run(repos.users.get_user_by_username("doctor"))
        assert patient.role == "patient"
        assert doctor.role == "doctor"
        assert patient.display_name == "John Doe"

        # stored as a real hash, never plaintext
        assert patient.hashed_password != DEMO_PASSWORD
        assert AuthHandler().verify_password(DEMO_PASSWORD, patient.hashed_password)

        categories = run(repos.categories.get_categories(patient.id))
        assert sorted(c.name for c in categories) == sorted(DEFAULT_CATEGORIES)
        assert all(c.count == 0 for c in categories)
        assert run(repos.conditions.get(patient.id)).summary

    def test_seed_is_skipped_when_present(self, repos):
        run(seed_demo_data(repos))
        assert run(seed_demo_data(repos)) is False
        assert len(run(repos.users.get_users_by_role("patient"))) == 1
