import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# -----------------------
# Database Config
# -----------------------
DB_TYPE = os.getenv("DB_TYPE", "sqlite").lower()

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres setup")
elif DB_TYPE == "sqlite":
    DATABASE_URL = os.getenv("DATABASE_URL") or "sqlite+aiosqlite:///./test.db"
else:
    raise ValueError(f"Unsupported DB_TYPE: {DB_TYPE}")

AUTO_CREATE_TABLES = _env_bool("AUTO_CREATE_TABLES", DB_TYPE == "sqlite")

# -----------------------
# Supabase (hosted auth + storage)
# -----------------------
SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
COMPANY_LOGO_BUCKET = os.getenv("COMPANY_LOGO_BUCKET", "company-logos")

# -----------------------
# JWT Config (tokens are issued by Supabase Auth, we only verify them)
# -----------------------
JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
if not JWT_SECRET:
    raise ValueError("SUPABASE_JWT_SECRET environment variable must be set")

JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")

# -----------------------
# Email (Postmark)
# -----------------------
POSTMARK_SERVER_TOKEN = os.getenv("POSTMARK_SERVER_TOKEN", "")
POSTMARK_FROM_EMAIL = os.getenv("POSTMARK_FROM_EMAIL", "")
POSTMARK_MESSAGE_STREAM = os.getenv("POSTMARK_MESSAGE_STREAM", "outbound")
ADMIN_NOTIFY_EMAIL = os.getenv("ADMIN_NOTIFY_EMAIL", "")
REPLY_TO_EMAIL = os.getenv("REPLY_TO_EMAIL", "")

# -----------------------
# Quote defaults
# -----------------------
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "America/Toronto")
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "CAD")
QUOTE_VALIDITY_DAYS = int(os.getenv("QUOTE_VALIDITY_DAYS", "30"))
DEFAULT_DEPOSIT_RATE = float(os.getenv("DEFAULT_DEPOSIT_RATE", "0.4"))
MAX_SIGNATURE_BYTES = int(os.getenv("MAX_SIGNATURE_BYTES", "1500000"))
MAX_LOGO_BYTES = int(os.getenv("MAX_LOGO_BYTES", "2000000"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
