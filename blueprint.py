import logging
from flask import jsonify
from index import main_bp
from routes.auth import auth_bp
from routes.manufacturing import mo_bp
from routes.qc import qc_bp
from routes.quotation import quotation_bp
from routes.sales_order import so_bp
from routes.inventory import inventory_bp
from routes.notification import notification_bp
from dao.errors import (
    RecordNotFound,
    InvalidTransition,
    ConcurrentUpdateError,
    DeletionBlocked,
)

logger = logging.getLogger(__name__)


def _error(ex, status):
    body = {"error": str(ex), "type": type(ex).__name__}
    for attr in ("entity", "entity_id", "current", "requested"):
        if hasattr(ex, attr):
            body[attr] = getattr(ex, attr)
    return jsonify(body), status


def register_error_handlers(app):
    @app.errorhandler(RecordNotFound)
    def not_found(ex):
        return _error(ex, 404)

    @app.errorhandler(ConcurrentUpdateError)
    def conflict(ex):
        logger.warning("%s", ex)
        return _error(ex, 409)

    @app.errorhandler(InvalidTransition)
    def invalid_transition(ex):
        return _error(ex, 409)

    @app.errorhandler(DeletionBlocked)
    def deletion_blocked(ex):
        return _error(ex, 409)

    @app.errorhandler(ValueError)
    def bad_request(ex):
        return _error(ex, 400)


def blue_print(app):
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(mo_bp)
    app.register_blueprint(qc_bp)
    app.register_blueprint(quotation_bp)
    app.register_blueprint(so_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(notification_bp)
    register_error_handlers(app)
