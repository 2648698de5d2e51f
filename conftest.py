# Ensures `from wisdom_api...` works when the package lives under `backend/wisdom_api`
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent
PKG_DIR = ROOT / "backend"
if str(PKG_DIR) not in sys.path:
    sys.path.insert(0, str(PKG_DIR))

# Settings are read once at import; these must be in place before any wisdom_api import.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "10")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("APP_BASE_URL", "https://wisdomhub.test")
os.environ.setdefault("ADMIN_EMAIL", "root@wisdomhub.test")

# Disable rate limits early so routers using SlowAPI decorators are plain functions
os.environ.setdefault("DISABLE_RATE_LIMITS", "1")
