"""
MediVault - Medical Records Sharing REST API
Patients store their medical documents and share them with doctors via QR codes
"""

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import uvicorn
from contextlib import asynccontextmanager
import logging
from datetime import datetime

# Import our modules
from app.config import get_settings
from app.database import engine, Base, SessionLocal
from app.limiter import limiter
from app.repositories.sql import sql_repositories
from app.routers import auth, users, documents, qr_codes
from app.seeds import seed_demo_data
from app.utils.error_handler import DatabaseManager, ErrorContext, ErrorHandler, RecordAccessError
from app import models  # noqa: F401  registers tables on Base.metadata

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Startup
    logger.info("Starting MediVault API...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    if get_settings().seed_demo_data:
        with DatabaseManager(SessionLocal) as db:
            await seed_demo_data(sql_repositories(db))

    yield

    # Shutdown
    logger.info("Shutting down MediVault API...")

# Create FastAPI app
app = FastAPI(
    title="MediVault API",
    description="Medical records storage with QR code sharing for doctors",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/v1/auth", tags=["authentication"])
app.include_router(users.router, prefix="/api/v1/users", tags=["users"])
app.include_router(documents.router, prefix="/api/v1", tags=["documents"])
app.include_router(qr_codes.router, prefix="/api/v1", tags=["qr codes"])

@app.get("/")
@limiter.limit("10/minute")
async def root(request: Request):
    """Root endpoint with API information - publicly accessible"""
    return {
        "message": "MediVault API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc",
        "timestamp": datetime.utcnow().isoformat()
    }

@app.get("/health")
@limiter.limit("30/minute")
async def health_check(request: Request):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }

@app.exception_handler(RecordAccessError)
async def record_access_exception_handler(request: Request, exc: RecordAccessError):
    """Structured domain errors become {message, code} with their own status"""
    return ErrorHandler.access_error_response(ErrorContext(request), exc)

# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unexpected errors under a tracking id and hide the details"""
    return ErrorHandler.create_error_response(ErrorContext(request), exc, status_code=500)

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
