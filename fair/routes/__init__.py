from werkzeug.exceptions import HTTPException

from fair.routes.admin import register_admin_routes
from fair.routes.auth import register_auth_routes
from fair.routes.external import register_external_routes
from fair.routes.hackathons import register_hackathon_routes
from fair.routes.public import register_public_routes


def register_routes(app):
    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return {"ok": False, "error": error.description}, error.code

    register_auth_routes(app)
    register_public_routes(app)
    register_external_routes(app)
    register_admin_routes(app)
    register_hackathon_routes(app)
