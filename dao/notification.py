# dao/notification.py
"""Fire-and-forget notification channel.

Dispatch always runs after the primary transaction has committed and in its
own transaction; failures are logged and swallowed.
"""
import logging
from typing import Iterable, List, Optional
from flask import current_app
from configs import db, NOTIFICATION_ROLES
from db.models.notification import Notification
from db.models.user import User, UserRole, UserRoleGrant
from dao import tx
from dao.errors import RecordNotFound

logger = logging.getLogger(__name__)

MATERIAL_SHORTAGE = "MATERIAL_SHORTAGE"
QC_REJECTED = "QC_REJECTED"
ORDER_SHIPPED = "ORDER_SHIPPED"


class RecipientDirectory:
    """Capability lookup: which users should hear about an event."""

    def __init__(self, roles_by_event: Optional[dict] = None):
        self._roles_by_event = roles_by_event

    def roles_for(self, event: str) -> List[UserRole]:
        table = self._roles_by_event
        if table is None:
            table = current_app.config.get("NOTIFICATION_ROLES", NOTIFICATION_ROLES)
        return [UserRole(r) for r in table.get(event, [])]

    def user_ids_for(self, event: str) -> List[int]:
        roles = self.roles_for(event)
        if not roles:
            return []
        rows = (
            db.session.query(UserRoleGrant.user_id)
            .join(User, User.id == UserRoleGrant.user_id)
            .filter(UserRoleGrant.role.in_(roles), User.is_active.is_(True))
            .distinct()
            .order_by(UserRoleGrant.user_id)
            .all()
        )
        return [r[0] for r in rows]


directory = RecipientDirectory()


def send(
    user_ids: Iterable[int],
    title: str,
    message: str,
    severity: str = "info",
    reference_type: Optional[str] = None,
    reference_id: Optional[int] = None,
) -> List[Notification]:
    rows = [
        Notification(
            user_id=uid,
            title=title,
            message=message,
            type=severity,
            reference_type=reference_type,
            reference_id=reference_id,
        )
        for uid in dict.fromkeys(user_ids)
    ]
    if rows:
        db.session.add_all(rows)
        tx.commit("Notification")
    return rows


def dispatch(
    event: str,
    title: str,
    message: str,
    severity: str = "info",
    reference_type: Optional[str] = None,
    reference_id: Optional[int] = None,
) -> int:
    """Best effort: never raises, returns the number of notifications sent."""
    try:
        user_ids = directory.user_ids_for(event)
        sent = send(user_ids, title, message, severity, reference_type, reference_id)
        return len(sent)
    except Exception:
        db.session.rollback()
        logger.exception(
            "Notification %s for %s #%s failed", event, reference_type, reference_id
        )
        return 0


# =========================
#          Inbox
# =========================
def list_for_user(user_id: int, limit: int = 50) -> List[Notification]:
    return (
        Notification.query.filter_by(user_id=int(user_id))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def unread_count(user_id: int) -> int:
    return Notification.query.filter_by(user_id=int(user_id), is_read=False).count()


def mark_read(notification_id: int, user_id: Optional[int] = None) -> Notification:
    """Mark one notification read. With user_id, only the recipient may do so."""
    n = tx.get(Notification, notification_id, "Notification")
    if user_id is not None and n.user_id != int(user_id):
        raise RecordNotFound("Notification", notification_id)
    n.is_read = True
    tx.commit("Notification", n.id)
    return n


def mark_all_read(user_id: int) -> int:
    count = Notification.query.filter_by(user_id=int(user_id), is_read=False).update(
        {"is_read": True}, synchronize_session="evaluate"
    )
    tx.commit("Notification")
    return count
