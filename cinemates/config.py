import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./cinemates.db")

# Razorpay Configuration
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET")
if not RAZORPAY_KEY_SECRET:
    import warnings

    warnings.warn(
        "RAZORPAY_KEY_SECRET not set! Payment orders and verification will fail until configured",
        RuntimeWarning,
        stacklevel=2,
    )
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "INR")

# Catalog cache (Redis); fail-open when Redis is unreachable
CACHE_ENABLED = os.getenv("CACHE_ENABLED", "true").lower() == "true"
CATALOG_CACHE_TTL = int(os.getenv("CATALOG_CACHE_TTL", "300"))

# Frontend origins allowed by CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")

# Wizard client settings
CINEMATES_API_URL = os.getenv("CINEMATES_API_URL", "http://localhost:8000")
CINEMATES_HTTP_TIMEOUT = float(os.getenv("CINEMATES_HTTP_TIMEOUT", "15"))
