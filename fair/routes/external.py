from functools import wraps

from flask import abort, current_app, g, request

from fair.models import ApiKey, Poll, Team, Vote
from fair.routes.payload import json_body, text_field
from fair.routes.public import check_voter_token
from fair.services.audit import log_audit
from fair.services.reporting import build_results_payload
from fair.services.security import hash_token


def _presented_api_key():
    key = request.headers.get("X-API-Key")
    if key:
        return key.strip()
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):].strip()
    return None


def require_api_key(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        key = _presented_api_key()
        if not key:
            return {"ok": False, "error": "API key required."}, 401

        api_key = ApiKey.query.filter_by(key_hash=hash_token(key)).first()
        if api_key is None or api_key.revoked:
            current_app.logger.warning("Rejected external request with invalid API key")
            return {"ok": False, "error": "Invalid or revoked API key."}, 401

        g.api_key = api_key
        return view(*args, **kwargs)

    return wrapped


def _key_owns(poll):
    if poll.created_by == g.api_key.admin_id:
        return True
    return poll.hackathon is not None and poll.hackathon.created_by == g.api_key.admin_id


def register_external_routes(app):
    @app.route("/api/external/v1/polls/<int:poll_id>/results")
    @require_api_key
    def external_poll_results(poll_id):
        poll = Poll.query.get_or_404(poll_id)
        if not (poll.is_public_results or _key_owns(poll)):
            abort(403, description="Results are not publicly available.")

        teams = Team.query.filter_by(poll_id=poll.id).order_by(Team.id).all()
        votes = Vote.query.filter_by(poll_id=poll.id).order_by(Vote.id).all()

        return {"ok": True, **build_results_payload(poll, teams, votes)}

    @app.route("/api/external/v1/vote/validate", methods=["POST"])
    @require_api_key
    def external_validate_token():
        data = json_body()
        body, status = check_voter_token(text_field(data, "token"))
        if status == 200:
            log_audit(
                "external_token_validated",
                user_id=g.api_key.admin_id,
                poll_id=body["poll"]["poll_id"],
                details={"api_key_id": g.api_key.id},
            )
        return body, status
