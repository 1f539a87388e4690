# Shared auth dependencies. Every panel route authenticates with a bearer
# JWT; the token's "sid" claim keys the persisted session store that
# carries the tenant pointer and flash messages.

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from paneltenancy.core.db import get_db
from paneltenancy.core.security import decode_access_token
from paneltenancy.crud.users import get_user

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login")

_credentials_exception = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


def get_token_payload(token: str = Depends(oauth2_scheme)) -> dict:
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        raise _credentials_exception from exc
    if not payload.get("sub"):
        raise _credentials_exception
    return payload


def get_current_user(
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
):
    user = get_user(db, payload.get("sub"))
    if user is None:
        raise _credentials_exception
    return user


def get_session_id(payload: dict = Depends(get_token_payload)) -> str:
    # Tokens minted without a session id share one session per user.
    return payload.get("sid") or f"user:{payload['sub']}"
