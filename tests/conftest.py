"""Root conftest — shared test configuration."""

import os
import tempfile

import bcrypt

ADMIN_EMAIL = "admin@troybbq.test"
ADMIN_PASSWORD = "correct horse battery staple"

# Ensure tests never reach real providers or write into the working tree
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_fake_key")
os.environ.setdefault("RESEND_API_KEY", "re_test_fake_key")
os.environ.setdefault("PAYMENT_TOKEN_SECRET", "test-payment-token-secret-0123456789abcdef")
os.environ.setdefault("SESSION_SECRET", "test-session-secret-0123456789abcdef012345")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("ADMIN_EMAIL", ADMIN_EMAIL)
os.environ.setdefault(
    "ADMIN_PASSWORD_HASH",
    bcrypt.hashpw(ADMIN_PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode(),
)
os.environ.setdefault("PUBLIC_BASE_URL", "https://troybbq.test")
os.environ.setdefault("LOG_FORMAT", "text")

_scratch = tempfile.mkdtemp(prefix="smokehouse-tests-")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_scratch, "uploads"))
os.environ.setdefault("QUARANTINE_DIR", os.path.join(_scratch, "quarantine"))
