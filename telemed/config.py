"""
config.py
=========
Loads runtime configuration from the environment (and an optional .env file)
and sets up logging for the telemedicine backend.
"""

import os
import logging
from dotenv import load_dotenv

# Load variables from .env if present
load_dotenv()

# SQLite database file
DB_PATH = os.getenv("TELEMED_DB", "data/telemed.db")

# Comma separated list of origins allowed to call the API
CORS_ORIGINS = [
    o.strip() for o in os.getenv("TELEMED_CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()
]

LOG_LEVEL = os.getenv("TELEMED_LOG_LEVEL", "INFO").upper()

# Lifetime of the mock access token, in seconds
TOKEN_TTL = int(os.getenv("TELEMED_TOKEN_TTL", "3600"))

# Base URL used by the API client
API_URL = os.getenv("TELEMED_API_URL", "http://localhost:8000/api")

PORT = int(os.getenv("PORT", "8000"))


def configure_logging(level: str = None):
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
