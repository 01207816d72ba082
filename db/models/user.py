# db/models/user.py
import enum
from configs import db
from flask_login import UserMixin


class UserRole(enum.Enum):
    ADMIN = "admin"
    HR = "hr"
    MANUFACTURE_MANAGER = "manufacture_manager"  # production planning, MO/QC
    INVENTORY_MANAGER = "inventory_manager"  # stock, shipments
    PURCHASING = "purchasing"  # raw-material procurement
    CFO = "cfo"


class User(db.Model, UserMixin):
    __tablename__ = "user_account"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(120))
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    grants = db.relationship(
        "UserRoleGrant", back_populates="user", cascade="all, delete-orphan"
    )

    def get_id(self):
        return str(self.id)

    @property
    def roles(self) -> set:
        return {g.role for g in self.grants}

    def has_role(self, *roles: UserRole):
        """True if the user holds at least one of the given roles."""
        return bool(self.roles.intersection(roles))

    def __str__(self):
        return self.full_name or self.username


class UserRoleGrant(db.Model):
    __tablename__ = "user_role"
    __table_args__ = (db.UniqueConstraint("user_id", "role", name="uq_user_role"),)

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False
    )
    role = db.Column(db.Enum(UserRole, name="app_role"), nullable=False, index=True)

    user = db.relationship("User", back_populates="grants")
