"""
Configuration management for Studyforge backend.
Loads configuration from environment variables and .env file.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
# Look for .env file in the backend directory or project root
BACKEND_DIR = Path(__file__).parent.parent
PROJECT_ROOT = BACKEND_DIR.parent
ENV_FILE = PROJECT_ROOT / ".env"

# Load .env file if it exists
if ENV_FILE.exists():
    load_dotenv(ENV_FILE)
else:
    # Also try loading from backend directory
    backend_env = BACKEND_DIR / ".env"
    if backend_env.exists():
        load_dotenv(backend_env)

PROMPTS_DIR = BACKEND_DIR / "prompts"

# Reasoning service (Gemini) configuration
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", os.getenv("API_KEY", None))
GEMINI_BASE_URL = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
)
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-3-flash-preview")

# LLM settings (can be overridden via env vars)
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.3"))
HTTP_TIMEOUT_SEC = float(os.getenv("HTTP_TIMEOUT_SEC", "60"))

# Upper bound for a single pipeline stage, retries and backoff included
STAGE_TIMEOUT_SEC = float(os.getenv("STAGE_TIMEOUT_SEC", "90"))

# Rate-limit retry policy
RETRY_MAX_ATTEMPTS = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
RETRY_BASE_DELAY_SEC = float(os.getenv("RETRY_BASE_DELAY_SEC", "1.0"))
RETRY_JITTER_MAX_SEC = float(os.getenv("RETRY_JITTER_MAX_SEC", "1.0"))

# Assessment
QUIZ_QUESTION_COUNT = int(os.getenv("QUIZ_QUESTION_COUNT", "5"))

# Document ingestion
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(20 * 1024 * 1024)))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# API configuration
API_V1_PREFIX = "/api/v1"
# CORS origins can be comma-separated list in env var
CORS_ORIGINS_STR = os.getenv("CORS_ORIGINS", "http://localhost:3000")
CORS_ORIGINS = [origin.strip() for origin in CORS_ORIGINS_STR.split(",")]

# Probe the reasoning service during startup validation
VALIDATE_SERVICE_ON_STARTUP = (
    os.getenv("VALIDATE_SERVICE_ON_STARTUP", "false").lower() == "true"
)
