# backend/config.py
# Environment-aware configuration for the investor backend

import logging
import os
from typing import Literal

logger = logging.getLogger(__name__)

# Environment detection
ENV: Literal["dev", "staging", "prod"] = os.environ.get("ENV", "dev")  # type: ignore
IS_DEV = (ENV == "dev")
IS_STAGING = (ENV == "staging")
IS_PROD = (ENV == "prod")

# JWT verification (tokens are issued elsewhere, this service only verifies them)
DEFAULT_JWT_SECRET = "dev-only-jwt-secret-change-me-before-deploying"
JWT_SECRET = os.environ.get("JWT_SECRET") or os.environ.get("SECRET_KEY") or DEFAULT_JWT_SECRET
ALGORITHM = "HS256"

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG" if IS_DEV else "INFO").upper()

# CORS origins (expand for staging/prod)
CORS_ORIGINS = [
    "http://localhost:8081",  # Expo dev server
    "http://127.0.0.1:8081",
]

if IS_STAGING or IS_PROD:
    extra_origins = os.environ.get("CORS_ORIGINS", "")
    if extra_origins:
        CORS_ORIGINS.extend(o.strip() for o in extra_origins.split(",") if o.strip())


def configure_logging() -> None:
    """Install a basic root handler once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=LOG_LEVEL,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    else:
        root.setLevel(LOG_LEVEL)

    logger.info("[CONFIG] Environment: %s", ENV)
    if JWT_SECRET == DEFAULT_JWT_SECRET and not IS_DEV:
        logger.warning("[CONFIG] JWT_SECRET is not set - using the dev default outside dev")
