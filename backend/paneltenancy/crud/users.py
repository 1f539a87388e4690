from sqlalchemy import func
from sqlalchemy.orm import Session

from paneltenancy.models.users import User


def get_user(db: Session, user_id) -> User | None:
    try:
        return db.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def create_user(db: Session, *, email: str, name: str, password_hash: str) -> User:
    user = User(email=email.strip().lower(), name=name, password_hash=password_hash)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
