"""Password hashing and strength validation for local accounts."""

import bcrypt
from zxcvbn import zxcvbn

# bcrypt only looks at the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72
BCRYPT_ROUNDS = 12

# Minimum zxcvbn score (0-4). 3 = "safely unguessable: moderate protection
# from offline slow-hash scenario".
MIN_ZXCVBN_SCORE = 3


def validate_password_strength(password: str, user_inputs: list[str] | None = None) -> str:
    """Reject passwords bcrypt would truncate or zxcvbn scores below 3.

    ``user_inputs`` (email, display name) lower the score when they appear in
    the password. Returns the password; raises ValueError with zxcvbn's
    feedback otherwise.
    """
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be {MAX_PASSWORD_BYTES} bytes or fewer")

    result = zxcvbn(password, user_inputs=user_inputs or [])
    if result["score"] >= MIN_ZXCVBN_SCORE:
        return password

    feedback = result.get("feedback", {})
    parts = [feedback["warning"]] if feedback.get("warning") else []
    parts.extend(feedback.get("suggestions", []))
    raise ValueError(". ".join(parts) if parts else "Password is too weak")


def hash_password(password: str) -> str:
    """bcrypt hash with a fresh salt, as stored in ``users.password_hash``."""
    hashed = bcrypt.hashpw(password.encode()[:MAX_PASSWORD_BYTES], bcrypt.gensalt(BCRYPT_ROUNDS))
    return hashed.decode()


def verify_password(password: str, password_hash: str) -> bool:
    """True when ``password`` matches the stored hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode()[:MAX_PASSWORD_BYTES], password_hash.encode())
    except (ValueError, TypeError):
        return False
