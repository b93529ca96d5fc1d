from flask import Flask

from fair.config import Config
from fair.extensions import db, login_manager, migrate
from fair.models import Admin
from fair.routes import register_routes


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(Admin, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return {"ok": False, "error": "Authentication required."}, 401

    register_routes(app)
    return app


__all__ = ["create_app", "db", "migrate"]
