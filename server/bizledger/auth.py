from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from bizledger.config import settings
from bizledger.db import get_db
from bizledger.errors import Unauthorized
from bizledger.models import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """The acting user, passed explicitly into every ledger and report call."""

    user_id: int
    registration_type: Optional[str] = None
    email: Optional[str] = None

    @property
    def includes_owner_equity(self) -> bool:
        return settings.includes_owner_equity(self.registration_type)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def get_current_user(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    if not token:
        raise Unauthorized()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id = payload.get("sub")
        if user_id is None:
            raise Unauthorized()
    except JWTError:
        raise Unauthorized()

    user = db.query(User).filter(User.id == int(user_id)).first()
    if not user or not user.is_active:
        raise Unauthorized()
    return user


def get_auth_context(current_user: User = Depends(get_current_user)) -> AuthContext:
    return AuthContext(
        user_id=current_user.id,
        registration_type=current_user.registration_type,
        email=current_user.email,
    )
