import os
from dotenv import load_dotenv

# Values from .env never override variables already set in the environment
load_dotenv()

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///./bookings.db")

if not DATABASE_URL:
    raise ValueError("DATABASE_URL is empty. Please check your .env file.")

# Seconds a writer waits on a locked database before giving up
LOCK_TIMEOUT = float(os.environ.get("LOCK_TIMEOUT", "5"))

PORT = int(os.environ.get("PORT", "3000"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FILE = os.environ.get("LOG_FILE", "logs/errors.log")
