"""
Runtime configuration.

Every setting is read once from the environment at import time. Defaults
are tuned for local development: in-memory storage, demo identities seeded
at startup, permissive CORS.
"""

import os
from pathlib import Path

SERVICE_NAME = "BGTS API"
VERSION = "1.0.0"

ENVIRONMENT = os.getenv("BGTS_ENV", "development")

# "memory" keeps everything in process; "json" writes one file per entity.
STORAGE_BACKEND = os.getenv("BGTS_STORAGE", "memory").lower()
DATA_DIR = Path(os.getenv("BGTS_DATA_DIR", "./data"))
FILE_LOCK_TIMEOUT = float(os.getenv("BGTS_FILE_LOCK_TIMEOUT", "10"))

REFERENCE_PREFIX = os.getenv("BGTS_REFERENCE_PREFIX", "BGTS")
CURRENCY_SYMBOL = os.getenv("BGTS_CURRENCY_SYMBOL", "Nu.")

LOG_LEVEL = os.getenv("BGTS_LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("BGTS_CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

# Demo directory. The tokens are opaque strings handed out to testers;
# only their SHA-256 digests are stored.
SEED_DEMO = os.getenv("BGTS_SEED_DEMO", "true").lower() in ("1", "true", "yes")
DEMO_SERVANT_TOKEN = os.getenv("BGTS_DEMO_SERVANT_TOKEN", "demo-servant-token")
DEMO_ADMIN_TOKEN = os.getenv("BGTS_DEMO_ADMIN_TOKEN", "demo-admin-token")
DEMO_COMMISSION_TOKEN = os.getenv("BGTS_DEMO_COMMISSION_TOKEN", "demo-commission-token")
