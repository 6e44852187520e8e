from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from ledger.core.config import ADMIN_ROLE, SALES_ROLE
from ledger.core.security import decode_access_token

# Tokens are issued by the external auth service; tokenUrl only documents where.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

@dataclass
class Actor:
    """The caller as described by its token. Role resolution happens upstream."""
    name: str
    roles: List[str] = field(default_factory=list)
    beneficiary_id: Optional[int] = None # Set when the caller is an affiliate or mentor

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles

    def can_view(self, beneficiary_id: int) -> bool:
        return self.is_admin or self.beneficiary_id == beneficiary_id

async def get_current_actor(token: Optional[str] = Depends(oauth2_scheme)) -> Actor:
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
    except JWTError: # Expired, bad signature, malformed
        raise credentials_exception

    subject: Optional[str] = payload.get("sub")
    roles = payload.get("roles") or []
    beneficiary_id = payload.get("beneficiary_id")
    if not subject or not isinstance(roles, list):
        raise credentials_exception
    if beneficiary_id is not None and not isinstance(beneficiary_id, int):
        raise credentials_exception
    return Actor(name=subject, roles=[str(role) for role in roles], beneficiary_id=beneficiary_id)

async def get_current_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The user doesn't have enough privileges",
        )
    return actor

async def get_sales_system(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Earnings are only created by the checkout pipeline (or an admin acting for it)."""
    if SALES_ROLE not in actor.roles and not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the sales system can record earnings",
        )
    return actor

def ensure_can_view(actor: Actor, beneficiary_id: int) -> None:
    if not actor.can_view(beneficiary_id):
        raise HTTPException(status_code=403, detail="Not authorized to view this beneficiary's ledger")
