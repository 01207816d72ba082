import logging
import os
from flask import Flask
from configs import (
    db,
    login,
    LOG_LEVEL,
    MO_DELETE_BLOCKED_STATUSES,
    NOTIFICATION_ROLES,
)
from db.models.user import User
from blueprint import blue_print
from admin.setup import init_admin


def create_app(config=None):
    logging.basicConfig(
        level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    app = Flask(__name__)
    app.secret_key = os.getenv("SECRET_KEY", "dev_secret")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL", "sqlite:///kido_mrp.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["MO_DELETE_BLOCKED_STATUSES"] = list(MO_DELETE_BLOCKED_STATUSES)
    app.config["NOTIFICATION_ROLES"] = dict(NOTIFICATION_ROLES)
    if config:
        app.config.update(config)

    db.init_app(app)
    login.init_app(app)

    @login.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    init_admin(app)  # /manage
    blue_print(app)
    return app


app = create_app()

if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=5000)
