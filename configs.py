# configs.py
import os
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from dotenv import load_dotenv

load_dotenv()

db = SQLAlchemy()
login = LoginManager()


def _csv(value: str | None) -> list[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


# Recipients per notification event, by capability role.
# Override with NOTIFY_ROLES_<EVENT>="admin,purchasing".
_DEFAULT_NOTIFICATION_ROLES = {
    "MATERIAL_SHORTAGE": ["manufacture_manager", "purchasing", "admin"],
    "QC_REJECTED": ["admin", "manufacture_manager"],
    "ORDER_SHIPPED": ["inventory_manager", "manufacture_manager", "admin"],
}

NOTIFICATION_ROLES = {
    event: _csv(os.getenv(f"NOTIFY_ROLES_{event}")) or roles
    for event, roles in _DEFAULT_NOTIFICATION_ROLES.items()
}

# MO statuses that may not be deleted; empty = audit-first, unrestricted
MO_DELETE_BLOCKED_STATUSES = _csv(os.getenv("MO_DELETE_BLOCKED_STATUSES"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
