"""
Shared test setup: settings for tests, an isolated SQLite database and helpers
"""

import os

# Must be set before any app module reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SCRYPT_ROUNDS"] = "4"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["DEMO_TOKENS_ENABLED"] = "false"

import asyncio
import base64

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.repositories.memory import memory_repositories
from main import app

# Test database setup
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

PDF_BYTES = b"%PDF-1.4 test document"

@pytest.fixture(autouse=True)
def fresh_database():
    """Every test starts from empty tables"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def client():
    return TestClient(app)

@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture
def repos():
    """In-memory repositories for service-level tests"""
    return memory_repositories()

def run(coro):
    return asyncio.run(coro)

def pdf_payload(content: bytes = PDF_BYTES, file_name: str = "report.pdf") -> dict:
    return {
        "file_name": file_name,
        "mime_type": "application/pdf",
        "size_bytes": len(content),
        "encoded_payload": base64.b64encode(content).decode("ascii"),
    }

def register_and_login(client: TestClient, username: str, role: str = "patient") -> tuple[int, dict]:
    """Create an account and return its id and bearer auth headers"""
    password = "Password123"
    response = client.post("/api/v1/auth/register", json={
        "username": username,
        "password": password,
        "display_name": username.title(),
        "email": f"{username}@example.com",
        "role": role,
    })
    assert response.status_code == 201, response.text
    user_id = response.json()["id"]

    response = client.post("/api/v1/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return user_id, {"Authorization": f"Bearer {response.json()['access_token']}"}
