"""
FastAPI main application.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import API_V1_PREFIX, CORS_ORIGINS, LOG_LEVEL, VALIDATE_SERVICE_ON_STARTUP
from core.config_validator import config_validator
from core.gemini_client import gemini
from api.routes import analysis, quiz

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Studyforge API",
    description="Lecture analysis and adaptive quiz API",
    version="1.0.0",
)


@app.on_event("startup")
async def validate_configuration():
    """Validate configuration on application startup."""
    logger.info("Validating configuration...")

    validation_result = config_validator.validate_all(probe_service=VALIDATE_SERVICE_ON_STARTUP)

    for warning in validation_result["warnings"]:
        logger.warning(warning)

    # Log errors and fail if invalid
    if not validation_result["valid"]:
        for error in validation_result["errors"]:
            logger.error(error)
        logger.critical("Application startup aborted due to configuration errors.")
        raise SystemExit(1)

    logger.info("Configuration validated successfully")


@app.on_event("shutdown")
async def close_clients():
    await gemini.aclose()


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(analysis.router, prefix=f"{API_V1_PREFIX}/analysis", tags=["analysis"])
app.include_router(quiz.router, prefix=f"{API_V1_PREFIX}/quiz", tags=["quiz"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Studyforge API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
