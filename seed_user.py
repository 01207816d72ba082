from configs import db
from db.models.user import UserRole
from dao import user as user_dao
from app import app  # app context

users = [
    ("admin", "System Admin", [UserRole.ADMIN]),
    ("planner1", "Production Planner", [UserRole.MANUFACTURE_MANAGER]),
    ("warehouse1", "Warehouse Manager", [UserRole.INVENTORY_MANAGER]),
    ("buyer1", "Purchasing Buyer", [UserRole.PURCHASING]),
    ("hr1", "HR Officer", [UserRole.HR]),
    ("cfo1", "Chief Financial Officer", [UserRole.CFO]),
]

with app.app_context():
    db.create_all()
    for username, full_name, roles in users:
        if user_dao.get_by_username(username):
            continue
        user_dao.create_user(username, "1", full_name=full_name, roles=roles)

    print("Seeded users with all defined roles")
