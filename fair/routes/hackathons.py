from flask import abort, current_app
from flask_login import current_user, login_required

from fair.extensions import db
from fair.models import Hackathon, Poll
from fair.routes.admin import parse_datetime
from fair.routes.payload import json_body, text_field
from fair.services.audit import log_audit
from fair.services.reporting import serialize_poll, serialize_team


def serialize_hackathon(hackathon):
    return {
        "id": hackathon.id,
        "name": hackathon.name,
        "description": hackathon.description,
        "start_date": hackathon.start_date.isoformat() if hackathon.start_date else None,
        "end_date": hackathon.end_date.isoformat() if hackathon.end_date else None,
        "created_by": hackathon.created_by,
    }


def parse_hackathon_fields(data, partial=False):
    """Read hackathon fields from a request body; return (fields, error)."""
    fields = {}

    if not partial or "name" in data:
        name = text_field(data, "name")
        if not name:
            return None, "Hackathon name is required."
        fields["name"] = name

    if not partial or "description" in data:
        fields["description"] = text_field(data, "description") or None

    for field in ("start_date", "end_date"):
        if not partial or field in data:
            raw = data.get(field)
            value = parse_datetime(raw)
            if raw and value is None:
                return None, f"{field} must be an ISO 8601 date-time."
            fields[field] = value

    return fields, None


def _managed_hackathon(hackathon_id):
    hackathon = Hackathon.query.get_or_404(hackathon_id)
    if not current_user.can_manage_hackathon(hackathon):
        abort(403, description="Access denied.")
    return hackathon


def _check_dates(start_date, end_date):
    if start_date and end_date and end_date <= start_date:
        return {"ok": False, "error": "end_date must be after start_date."}, 400
    return None


def register_hackathon_routes(app):
    @app.route("/api/v1/admin/hackathons")
    @login_required
    def admin_hackathons():
        query = Hackathon.query
        if not current_user.is_super_admin:
            query = query.filter_by(created_by=current_user.id)
        hackathons = query.order_by(Hackathon.id).all()
        return {
            "ok": True,
            "hackathons": [serialize_hackathon(hackathon) for hackathon in hackathons],
        }

    @app.route("/api/v1/admin/hackathons", methods=["POST"])
    @login_required
    def create_hackathon():
        fields, error = parse_hackathon_fields(json_body())
        if error:
            return {"ok": False, "error": error}, 400
        bad_dates = _check_dates(fields["start_date"], fields["end_date"])
        if bad_dates:
            return bad_dates

        hackathon = Hackathon(created_by=current_user.id, **fields)
        db.session.add(hackathon)
        db.session.commit()
        current_app.logger.info(
            "Admin %s created hackathon %s", current_user.id, hackathon.id
        )
        log_audit(
            "hackathon_created",
            user_id=current_user.id,
            role="admin",
            details={"hackathon_id": hackathon.id},
        )
        return {"ok": True, "hackathon": serialize_hackathon(hackathon)}, 201

    @app.route("/api/v1/admin/hackathons/<int:hackathon_id>")
    @login_required
    def hackathon_detail(hackathon_id):
        hackathon = _managed_hackathon(hackathon_id)
        return {
            "ok": True,
            "hackathon": serialize_hackathon(hackathon),
            "polls": [serialize_poll(poll) for poll in hackathon.polls],
            "teams": [serialize_team(team) for team in hackathon.teams],
        }

    @app.route("/api/v1/admin/hackathons/<int:hackathon_id>/update", methods=["POST"])
    @login_required
    def update_hackathon(hackathon_id):
        hackathon = _managed_hackathon(hackathon_id)
        fields, error = parse_hackathon_fields(json_body(), partial=True)
        if error:
            return {"ok": False, "error": error}, 400
        bad_dates = _check_dates(
            fields.get("start_date", hackathon.start_date),
            fields.get("end_date", hackathon.end_date),
        )
        if bad_dates:
            return bad_dates

        for field, value in fields.items():
            setattr(hackathon, field, value)
        db.session.commit()
        return {"ok": True, "hackathon": serialize_hackathon(hackathon)}

    @app.route("/api/v1/admin/hackathons/<int:hackathon_id>/delete", methods=["POST"])
    @login_required
    def delete_hackathon(hackathon_id):
        hackathon = _managed_hackathon(hackathon_id)
        if Poll.query.filter_by(hackathon_id=hackathon.id).first():
            return {
                "ok": False,
                "error": "Delete the polls of this hackathon first.",
            }, 409

        db.session.delete(hackathon)
        db.session.commit()
        current_app.logger.info(
            "Admin %s deleted hackathon %s", current_user.id, hackathon_id
        )
        log_audit(
            "hackathon_deleted",
            user_id=current_user.id,
            role="admin",
            details={"hackathon_id": hackathon_id},
        )
        return {"ok": True}
