# Issues bearer tokens for panel users. Each login starts a new session
# id, so tenant pointers and flash messages are per login, not per user.

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from paneltenancy.core.db import get_db
from paneltenancy.core.security import create_access_token, new_session_id, verify_password
from paneltenancy.crud.users import get_user_by_email
from paneltenancy.schemas.users import LoginRequest, Token

router = APIRouter(tags=["auth"])

logger = logging.getLogger(__name__)


@router.post("/login", response_model=Token)
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    user = get_user_by_email(db, credentials.email)
    if user is None or not verify_password(credentials.password, user.password_hash):
        logger.info("auth.login_failed", extra={"email": credentials.email})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = create_access_token({"sub": str(user.id), "sid": new_session_id()})
    logger.info("auth.login", extra={"user_id": user.id})
    return {"access_token": token, "token_type": "bearer"}
