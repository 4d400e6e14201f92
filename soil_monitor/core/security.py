import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from soil_monitor.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

REQUIRED_CLAIMS = ("sub", "exp")

ACCESS_PURPOSE = "access"
RESET_PURPOSE = "password-reset"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def password_fingerprint(password_hash: str) -> str:
    # changes with every new password, so a reset token works only once
    return hashlib.sha256(password_hash.encode()).hexdigest()[:16]


def _encode(sub: str, purpose: str, lifetime: timedelta, extra: Optional[Dict[str, Any]] = None) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": str(sub),
        "purpose": purpose,
        "iat": int(issued.timestamp()),
        "exp": int((issued + lifetime).timestamp()),
    }
    if extra:
        claims.update(extra)
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(sub: str, role: str = "user", expires_delta: Optional[timedelta] = None) -> str:
    """
    Signs a bearer token for one account.
    sub: user id; role travels as a claim so clients can show/hide admin views.
    """
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(sub, ACCESS_PURPOSE, lifetime, {"role": role})


def create_reset_token(sub: str, password_hash: str, expires_delta: Optional[timedelta] = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    return _encode(sub, RESET_PURPOSE, lifetime, {"pwd": password_fingerprint(password_hash)})


def decode_token(token: str, purpose: str = ACCESS_PURPOSE) -> Optional[Dict[str, Any]]:
    """Claims of a valid token issued for ``purpose``, or None when it is malformed, expired or incomplete."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if any(name not in claims for name in REQUIRED_CLAIMS):
        return None
    if claims.get("purpose") != purpose:
        return None
    return claims
