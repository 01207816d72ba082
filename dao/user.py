from typing import Iterable, List, Optional
from werkzeug.security import generate_password_hash
from configs import db
from db.models.user import User, UserRole, UserRoleGrant
from dao import tx


def _to_role(value) -> UserRole:
    if isinstance(value, UserRole):
        return value
    try:
        return UserRole((value or "").strip().lower())
    except ValueError:
        raise ValueError(f"Unknown role: {value!r}")


def list_users() -> List[User]:
    return User.query.order_by(User.username.asc()).all()


def get_by_username(username: str) -> Optional[User]:
    return User.query.filter_by(username=(username or "").strip()).first()


def create_user(
    username: str,
    password: str,
    full_name: Optional[str] = None,
    roles: Iterable = (),
    is_active: bool = True,
) -> User:
    if not (username or "").strip() or not password:
        raise ValueError("Username and password are required.")
    u = User(
        username=username.strip(),
        password_hash=generate_password_hash(password),
        full_name=full_name,
        is_active=is_active,
    )
    for r in {_to_role(r) for r in roles}:
        u.grants.append(UserRoleGrant(role=r))
    db.session.add(u)
    tx.commit("User")
    return u


def grant_role(user_id: int, role) -> User:
    u = tx.get(User, user_id, "User")
    role = _to_role(role)
    if role not in u.roles:
        u.grants.append(UserRoleGrant(role=role))
        tx.commit("User", u.id)
    return u


def revoke_role(user_id: int, role) -> User:
    u = tx.get(User, user_id, "User")
    role = _to_role(role)
    for g in list(u.grants):
        if g.role == role:
            u.grants.remove(g)
    tx.commit("User", u.id)
    return u
