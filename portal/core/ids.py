import uuid
from datetime import datetime, timezone

# Account code prefix per role; unknown roles fall back to "user"
ACCOUNT_CODE_PREFIXES = {
    "client": "user",
    "developer": "dev",
    "admin": "admin",
}


def generate_unique_id() -> str:
    """16-character lowercase hex identity used for every entity."""
    return uuid.uuid4().hex[:16]


def generate_account_code(role: str) -> str:
    prefix = ACCOUNT_CODE_PREFIXES.get(str(role), "user")
    return f"{prefix}-{generate_unique_id()[:8]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    return utcnow().isoformat()
