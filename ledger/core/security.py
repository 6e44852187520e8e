from datetime import datetime, timedelta, timezone
from typing import List, Optional

from jose import jwt

from ledger.core.config import SECRET_KEY, ALGORITHM

def create_access_token(
    subject: str,
    roles: Optional[List[str]] = None,
    beneficiary_id: Optional[int] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Mint a bearer token in the format the ledger accepts. In production the
    external auth service issues these; the helper exists for tooling and tests.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=30))
    to_encode = {"sub": subject, "roles": list(roles or []), "exp": expire}
    if beneficiary_id is not None:
        to_encode["beneficiary_id"] = beneficiary_id
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def decode_access_token(token: str) -> dict:
    # Raises jose.JWTError on a bad signature, expiry or malformed token.
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
