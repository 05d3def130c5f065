"""
Security utilities: password hashing and JWT tokens for console users and guard terminals
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from app.core.config import settings

logger = logging.getLogger(__name__)

TOKEN_KIND_USER = "user"
TOKEN_KIND_GUARD = "guard"

argon2_available = False
bcrypt_available = False

try:
    import argon2
    hasher = argon2.PasswordHasher()
    if hasher.verify(hasher.hash("test"), "test"):
        argon2_available = True
except Exception as e:
    logger.warning("Argon2 backend not available: %s", e)

try:
    import bcrypt
    if bcrypt.checkpw(b"test", bcrypt.hashpw(b"test", bcrypt.gensalt())):
        bcrypt_available = True
except Exception as e:
    logger.warning("Bcrypt backend not available: %s", e)

if not argon2_available and not bcrypt_available:
    error_msg = "No password hashing backends available. Please install argon2-cffi or bcrypt."
    logger.critical(error_msg)
    raise RuntimeError(error_msg)

# Used only to verify legacy hashes whose scheme the direct backends do not recognise
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password using available backend (argon2 preferred, bcrypt fallback)"""
    if argon2_available:
        try:
            return argon2.PasswordHasher().hash(password)
        except Exception as e:
            logger.warning("Argon2 hashing failed, falling back to bcrypt: %s", e)

    if bcrypt_available:
        # bcrypt only looks at the first 72 bytes
        password_bytes = password.encode("utf-8")[:72]
        return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode("utf-8")

    raise RuntimeError("No hashing backends available")


def validate_password(password: Optional[str]) -> str:
    """
    Validate and normalize a password before hashing

    Raises:
        ValueError: If password is invalid with specific error message
    """
    if password is None:
        raise ValueError("Password is required")

    password = password.strip()
    if not password:
        raise ValueError("Password cannot be empty")
    if len(password) < 6:
        raise ValueError("Password must be at least 6 characters")
    if len(password.encode("utf-8")) > 72:
        raise ValueError("Password cannot be longer than 72 bytes when encoded as UTF-8")
    return password


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash"""
    if not hashed_password:
        return False

    if argon2_available and hashed_password.startswith("$argon2"):
        try:
            return argon2.PasswordHasher().verify(hashed_password, plain_password)
        except Exception:
            return False

    if bcrypt_available:
        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
        except Exception:
            pass

    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception:
        return False


def create_access_token(
    subject_id: int,
    organization_id: int,
    kind: str,
    extra: Optional[Dict] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Create a JWT access token

    The payload always carries the principal (`sub`), its organization (`org_id`)
    and the principal kind (`user` for console accounts, `guard` for terminals).
    """
    if kind not in (TOKEN_KIND_USER, TOKEN_KIND_GUARD):
        raise ValueError(f"Unknown token kind: {kind}")

    if expires_minutes is None:
        expires_minutes = settings.JWT_EXPIRE_MINUTES

    # JWT 'sub' claim must be a string
    to_encode = dict(extra or {})
    to_encode.update({
        "sub": str(subject_id),
        "org_id": organization_id,
        "kind": kind,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes),
    })
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict:
    """Decode and verify a JWT token"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise ValueError("Invalid token")


def check_hashing_backend() -> Dict[str, object]:
    """
    Runtime check for hashing backend availability

    Raises:
        RuntimeError: If hashing round-trip fails
    """
    test_password = "test_backend_check"
    if not verify_password(test_password, hash_password(test_password)):
        raise RuntimeError("Hashing backend verification failed")
    return {
        "status": "healthy",
        "argon2_available": argon2_available,
        "bcrypt_available": bcrypt_available,
        "primary_scheme": "argon2" if argon2_available else "bcrypt",
    }
