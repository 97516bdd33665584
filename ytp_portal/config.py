import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ytp_portal.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Fernet key for stored integration secrets (LawPay tokens, Drive private key).
# Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
# Derived from SECRET_KEY when unset.
ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY")

# Session cookie
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "ytp_session")
SESSION_MAX_AGE = int(os.getenv("SESSION_MAX_AGE", str(60 * 60 * 24 * 7)))
SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", str(IS_PRODUCTION)).lower() == "true"

# CSRF is ENABLED by default; set CSRF_ENABLED=false only for development/testing
CSRF_ENABLED = os.getenv("CSRF_ENABLED", "true").lower() == "true"
SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"

# Frontend base URL for redirects
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", f"{FRONTEND_URL},http://localhost:3000").split(",")

# LawPay OAuth Configuration
LAWPAY_ENVIRONMENT = os.getenv("LAWPAY_ENVIRONMENT", "production")
LAWPAY_CLIENT_ID = os.getenv("LAWPAY_CLIENT_ID")
LAWPAY_CLIENT_SECRET = os.getenv("LAWPAY_CLIENT_SECRET")
LAWPAY_REDIRECT_URI = os.getenv("LAWPAY_REDIRECT_URI", f"{FRONTEND_URL}/api/auth/lawpay/callback")
LAWPAY_SCOPE = os.getenv("LAWPAY_SCOPE", "payments")

# Redis (optional) - caches LawPay access tokens with their TTL
REDIS_URL = os.getenv("REDIS_URL")
