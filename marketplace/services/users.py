# marketplace/services/users.py
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.db.models.recruiter import Recruiter
from marketplace.db.models.user import Role, User, user_roles


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


def get_role_names(db: Session, user_id) -> List[str]:
    rows = (
        db.query(Role.name)
        .join(user_roles, user_roles.c.role_id == Role.id)
        .filter(user_roles.c.user_id == user_id)
        .order_by(Role.id)
        .all()
    )
    return [name for (name,) in rows]


def get_recruiter_for_user(db: Session, user_id) -> Optional[Recruiter]:
    return db.query(Recruiter).filter(Recruiter.user_id == user_id).first()
