from datetime import datetime, timezone

from flask import abort, current_app, request
from flask_login import current_user, login_required

from fair.extensions import db
from fair.models import ApiKey, AuditLog, Hackathon, Judge, Poll, Team, Vote, VoterToken
from fair.models.poll import VOTING_MODES, VOTING_PERMISSIONS
from fair.routes.payload import json_body, text_field
from fair.services.audit import log_audit, serialize_audit_log
from fair.services.reporting import serialize_poll, serialize_team
from fair.services.security import generate_api_key, generate_voter_token, hash_token
from fair.services.tally import tally_poll_results
from fair.services.team_import import parse_team_csv, team_csv_template
from fair.services.tie_breaker import find_tied_teams, tie_breaker_settings

MAX_TOKENS_PER_REQUEST = 500
MAX_CSV_BYTES = 1024 * 1024


def parse_datetime(raw):
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_weight(raw, default=1.0):
    try:
        parsed = float(raw) if raw is not None and raw != "" else default
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _parse_int(raw):
    if isinstance(raw, bool):
        raise ValueError(raw)
    if isinstance(raw, float) and not raw.is_integer():
        raise ValueError(raw)
    return int(raw)


def _parse_optional_count(raw, minimum=0):
    """Blank means "no limit"; anything else must be an integer >= minimum."""
    if raw is None or raw == "":
        return None
    parsed = _parse_int(raw)
    if parsed < minimum:
        raise ValueError(raw)
    return parsed


def _parse_rank_points(raw):
    if not isinstance(raw, dict):
        return None
    config = {}
    for key, value in raw.items():
        try:
            rank = int(key)
            points = int(value)
        except (TypeError, ValueError):
            continue
        if rank >= 1:
            config[str(rank)] = points
    return config or None


COUNT_FIELDS = (
    ("max_ranked_positions", 1),
    ("min_voter_participation", 0),
    ("min_judge_participation", 0),
)


def parse_poll_settings(data, partial=False):
    """Read poll settings from a request body; return (settings, error)."""
    settings = {}

    if not partial or "name" in data:
        name = text_field(data, "name")
        if not name:
            return None, "Poll name is required."
        settings["name"] = name

    for field in ("start_time", "end_time"):
        if not partial or field in data:
            value = parse_datetime(data.get(field))
            if value is None:
                return None, f"{field} must be an ISO 8601 date-time."
            settings[field] = value

    if not partial or "voting_mode" in data:
        voting_mode = data.get("voting_mode") or "single"
        if voting_mode not in VOTING_MODES:
            return None, "Invalid voting mode."
        settings["voting_mode"] = voting_mode

    if not partial or "voting_permissions" in data:
        permissions = data.get("voting_permissions") or "voters_and_judges"
        if permissions not in VOTING_PERMISSIONS:
            return None, "Invalid voting permissions."
        settings["voting_permissions"] = permissions

    for field in ("voter_weight", "judge_weight"):
        if not partial or field in data:
            settings[field] = _parse_weight(data.get(field))

    for field, minimum in COUNT_FIELDS:
        if not partial or field in data:
            try:
                settings[field] = _parse_optional_count(data.get(field), minimum)
            except (TypeError, ValueError):
                qualifier = "a positive" if minimum else "a non-negative"
                return None, f"{field} must be {qualifier} integer."

    if not partial or "rank_points_config" in data:
        settings["rank_points_config"] = _parse_rank_points(
            data.get("rank_points_config")
        )

    for field in ("allow_self_vote", "is_public_results"):
        if not partial or field in data:
            settings[field] = bool(data.get(field))

    start_time = settings.get("start_time")
    end_time = settings.get("end_time")
    if start_time and end_time and end_time <= start_time:
        return None, "end_time must be after start_time."

    return settings, None


def _managed_poll(poll_id):
    poll = Poll.query.get_or_404(poll_id)
    if not current_user.can_manage(poll):
        abort(403, description="Access denied.")
    return poll


def _poll_team(poll, team_id):
    team = Team.query.filter_by(id=team_id, poll_id=poll.id).first()
    if team is None:
        abort(404, description="Team not found in this poll.")
    return team


def _team_has_votes(poll, team_id):
    for vote in poll.votes:
        if vote.team_id_target == team_id:
            return True
        if isinstance(vote.teams, list) and team_id in vote.teams:
            return True
        if isinstance(vote.rankings, list) and any(
            isinstance(entry, dict) and entry.get("team_id") == team_id
            for entry in vote.rankings
        ):
            return True
    return False


def _uploaded_csv_text():
    upload = request.files.get("file")
    if upload is not None:
        raw = upload.read(MAX_CSV_BYTES + 1)
    else:
        raw = request.get_data(cache=False)
    if not raw:
        return None, "Upload a CSV file in the 'file' field or as the request body."
    if len(raw) > MAX_CSV_BYTES:
        return None, "CSV file is too large."
    try:
        return raw.decode("utf-8"), None
    except UnicodeDecodeError:
        return None, "CSV file must be UTF-8 encoded."


def _serialize_token(token):
    return {
        "id": token.id,
        "team_id": token.team_id,
        "email": token.email,
        "used": token.used,
    }


def _serialize_judge(judge):
    return {"id": judge.id, "email": judge.email, "name": judge.name}


def register_admin_routes(app):
    @app.route("/api/v1/admin/polls")
    @login_required
    def admin_polls():
        query = Poll.query
        if not current_user.is_super_admin:
            query = query.filter_by(created_by=current_user.id)
        polls = query.order_by(Poll.id).all()
        return {"ok": True, "polls": [serialize_poll(poll) for poll in polls]}

    @app.route("/api/v1/admin/polls", methods=["POST"])
    @login_required
    def create_poll():
        data = json_body()
        settings, error = parse_poll_settings(data)
        if error:
            return {"ok": False, "error": error}, 400

        hackathon_id = data.get("hackathon_id")
        if hackathon_id is not None:
            try:
                hackathon = db.session.get(Hackathon, _parse_int(hackathon_id))
            except (TypeError, ValueError):
                hackathon = None
            if hackathon is None:
                return {"ok": False, "error": "Hackathon not found."}, 400
            if not current_user.can_manage_hackathon(hackathon):
                abort(403, description="Access denied.")
            settings["hackathon_id"] = hackathon.id

        poll = Poll(created_by=current_user.id, **settings)
        db.session.add(poll)
        db.session.commit()
        current_app.logger.info("Admin %s created poll %s", current_user.id, poll.id)
        log_audit("poll_created", user_id=current_user.id, poll_id=poll.id, role="admin")
        return {"ok": True, "poll": serialize_poll(poll)}, 201

    @app.route("/api/v1/admin/polls/<int:poll_id>")
    @login_required
    def poll_detail(poll_id):
        poll = _managed_poll(poll_id)
        return {
            "ok": True,
            "poll": serialize_poll(poll),
            "teams": [serialize_team(team) for team in poll.teams],
            "judges": [_serialize_judge(judge) for judge in poll.judges],
            "tokens_issued": len(poll.voter_tokens),
            "tokens_used": sum(1 for token in poll.voter_tokens if token.used),
            "total_votes": len(poll.votes),
        }

    @app.route("/api/v1/admin/polls/<int:poll_id>/update", methods=["POST"])
    @login_required
    def update_poll(poll_id):
        poll = _managed_poll(poll_id)
        data = json_body()
        settings, error = parse_poll_settings(data, partial=True)
        if error:
            return {"ok": False, "error": error}, 400

        new_mode = settings.get("voting_mode", poll.voting_mode)
        if poll.votes and new_mode != poll.voting_mode:
            return {
                "ok": False,
                "error": "Voting mode cannot change once votes have been cast.",
            }, 409

        start_time = settings.get("start_time", poll.start_time)
        end_time = settings.get("end_time", poll.end_time)
        if end_time <= start_time:
            return {"ok": False, "error": "end_time must be after start_time."}, 400

        for field, value in settings.items():
            setattr(poll, field, value)

        db.session.commit()
        log_audit(
            "poll_updated",
            user_id=current_user.id,
            poll_id=poll.id,
            role="admin",
            details={"fields": sorted(settings)},
        )
        return {"ok": True, "poll": serialize_poll(poll)}

    @app.route("/api/v1/admin/polls/<int:poll_id>/delete", methods=["POST"])
    @login_required
    def delete_poll(poll_id):
        poll = _managed_poll(poll_id)

        if Poll.query.filter_by(parent_poll_id=poll.id).first():
            return {
                "ok": False,
                "error": "Delete the tie-breaker polls of this poll first.",
            }, 409

        Vote.query.filter_by(poll_id=poll.id).delete(synchronize_session=False)
        VoterToken.query.filter_by(poll_id=poll.id).delete(synchronize_session=False)
        Judge.query.filter_by(poll_id=poll.id).delete(synchronize_session=False)
        Team.query.filter_by(poll_id=poll.id).delete(synchronize_session=False)

        db.session.delete(poll)
        db.session.commit()
        current_app.logger.info("Admin %s deleted poll %s", current_user.id, poll_id)
        log_audit("poll_deleted", user_id=current_user.id, poll_id=poll_id, role="admin")
        return {"ok": True}

    @app.route("/api/v1/admin/polls/<int:poll_id>/teams", methods=["POST"])
    @login_required
    def add_team(poll_id):
        poll = _managed_poll(poll_id)
        data = json_body()
        name = text_field(data, "name")
        if not name:
            return {"ok": False, "error": "Team name is required."}, 400

        team = Team(
            poll_id=poll.id,
            hackathon_id=poll.hackathon_id,
            name=name,
            project_name=text_field(data, "project_name") or None,
            project_description=text_field(data, "project_description") or None,
        )
        db.session.add(team)
        db.session.commit()
        return {"ok": True, "team": serialize_team(team)}, 201

    @app.route("/api/v1/admin/polls/<int:poll_id>/teams/<int:team_id>/update", methods=["POST"])
    @login_required
    def update_team(poll_id, team_id):
        poll = _managed_poll(poll_id)
        team = _poll_team(poll, team_id)
        data = json_body()

        if "name" in data:
            name = text_field(data, "name")
            if not name:
                return {"ok": False, "error": "Team name is required."}, 400
            team.name = name
        for field in ("project_name", "project_description"):
            if field in data:
                setattr(team, field, text_field(data, field) or None)

        db.session.commit()
        return {"ok": True, "team": serialize_team(team)}

    @app.route("/api/v1/admin/polls/<int:poll_id>/teams/<int:team_id>/delete", methods=["POST"])
    @login_required
    def delete_team(poll_id, team_id):
        poll = _managed_poll(poll_id)
        team = _poll_team(poll, team_id)

        if _team_has_votes(poll, team.id):
            return {
                "ok": False,
                "error": "This team has received votes and cannot be deleted.",
            }, 409

        VoterToken.query.filter_by(poll_id=poll.id, team_id=team.id).update(
            {"team_id": None}, synchronize_session=False
        )
        db.session.delete(team)
        db.session.commit()
        log_audit(
            "team_deleted",
            user_id=current_user.id,
            poll_id=poll.id,
            role="admin",
            details={"team_id": team_id},
        )
        return {"ok": True}

    @app.route("/api/v1/admin/teams/csv-template")
    @login_required
    def team_csv_template_download():
        return (
            team_csv_template(),
            200,
            {
                "Content-Type": "text/csv; charset=utf-8",
                "Content-Disposition": "attachment; filename=teams_template.csv",
            },
        )

    @app.route("/api/v1/admin/polls/<int:poll_id>/teams/import", methods=["POST"])
    @login_required
    def import_teams(poll_id):
        poll = _managed_poll(poll_id)
        text, error = _uploaded_csv_text()
        if error:
            return {"ok": False, "error": error}, 400

        rows, errors = parse_team_csv(text)
        if errors:
            return {"ok": False, "error": "CSV has invalid rows.", "errors": errors}, 400
        if not rows:
            return {"ok": False, "error": "CSV has no team rows."}, 400

        existing = {team.name.lower() for team in poll.teams}
        clashes = [row["name"] for row in rows if row["name"].lower() in existing]
        if clashes:
            return {
                "ok": False,
                "error": "Teams already exist in this poll.",
                "errors": [f"Team {name!r} already exists." for name in clashes],
            }, 409

        teams = [Team(poll_id=poll.id, hackathon_id=poll.hackathon_id, **row) for row in rows]
        db.session.add_all(teams)
        db.session.commit()

        current_app.logger.info("Imported %d teams into poll %s", len(teams), poll.id)
        log_audit(
            "teams_imported",
            user_id=current_user.id,
            poll_id=poll.id,
            role="admin",
            details={"count": len(teams)},
        )
        return {"ok": True, "teams": [serialize_team(team) for team in teams]}, 201

    @app.route("/api/v1/admin/polls/<int:poll_id>/tokens")
    @login_required
    def list_tokens(poll_id):
        poll = _managed_poll(poll_id)
        tokens = VoterToken.query.filter_by(poll_id=poll.id).order_by(VoterToken.id).all()
        return {"ok": True, "tokens": [_serialize_token(token) for token in tokens]}

    @app.route("/api/v1/admin/polls/<int:poll_id>/tokens", methods=["POST"])
    @login_required
    def issue_tokens(poll_id):
        poll = _managed_poll(poll_id)
        data = json_body()

        raw_count = data.get("count")
        try:
            count = 1 if raw_count is None else _parse_int(raw_count)
        except (TypeError, ValueError):
            return {"ok": False, "error": "count must be an integer."}, 400
        if count < 1 or count > MAX_TOKENS_PER_REQUEST:
            return {
                "ok": False,
                "error": f"count must be between 1 and {MAX_TOKENS_PER_REQUEST}.",
            }, 400

        team_id = None
        if data.get("team_id") is not None:
            try:
                team_id = _parse_int(data.get("team_id"))
            except (TypeError, ValueError):
                return {"ok": False, "error": "team_id must be an integer."}, 400
            team = Team.query.filter_by(id=team_id, poll_id=poll.id).first()
            if team is None:
                return {"ok": False, "error": "Team not found in this poll."}, 400

        email = text_field(data, "email").lower() or None

        records = []
        tokens = []
        for _ in range(count):
            token = generate_voter_token()
            record = VoterToken(
                poll_id=poll.id,
                token_hash=hash_token(token),
                team_id=team_id,
                email=email,
            )
            db.session.add(record)
            records.append(record)
            tokens.append(token)
        db.session.commit()

        current_app.logger.info("Issued %d voter tokens for poll %s", count, poll.id)
        log_audit(
            "tokens_issued",
            user_id=current_user.id,
            poll_id=poll.id,
            role="admin",
            details={"count": count, "team_id": team_id},
        )
        return {
            "ok": True,
            "tokens": tokens,
            "token_ids": [record.id for record in records],
        }, 201

    @app.route("/api/v1/admin/polls/<int:poll_id>/tokens/<int:token_id>/delete", methods=["POST"])
    @login_required
    def delete_token(poll_id, token_id):
        poll = _managed_poll(poll_id)
        token = VoterToken.query.filter_by(id=token_id, poll_id=poll.id).first_or_404()
        if token.used:
            return {"ok": False, "error": "A used token cannot be removed."}, 409

        db.session.delete(token)
        db.session.commit()
        log_audit(
            "token_deleted",
            user_id=current_user.id,
            poll_id=poll.id,
            role="admin",
            details={"token_id": token_id},
        )
        return {"ok": True}

    @app.route("/api/v1/admin/polls/<int:poll_id>/judges", methods=["POST"])
    @login_required
    def add_judge(poll_id):
        poll = _managed_poll(poll_id)
        data = json_body()
        email = text_field(data, "email").lower()
        if not email or "@" not in email:
            return {"ok": False, "error": "A valid judge email is required."}, 400

        if Judge.query.filter_by(poll_id=poll.id, email=email).first():
            return {"ok": False, "error": "Judge already added to this poll."}, 409

        judge = Judge(poll_id=poll.id, email=email, name=text_field(data, "name") or None)
        db.session.add(judge)
        db.session.commit()
        return {"ok": True, "judge": _serialize_judge(judge)}, 201

    @app.route("/api/v1/admin/polls/<int:poll_id>/judges/<int:judge_id>/delete", methods=["POST"])
    @login_required
    def remove_judge(poll_id, judge_id):
        poll = _managed_poll(poll_id)
        judge = Judge.query.filter_by(id=judge_id, poll_id=poll.id).first_or_404()
        email = judge.email

        # A recorded ballot stays in the tally; the judge only loses the right to vote.
        db.session.delete(judge)
        db.session.commit()
        log_audit(
            "judge_removed",
            user_id=current_user.id,
            poll_id=poll.id,
            role="admin",
            details={"email": email},
        )
        return {"ok": True}

    @app.route("/api/v1/admin/polls/<int:poll_id>/audit-logs")
    @login_required
    def poll_audit_logs(poll_id):
        poll = _managed_poll(poll_id)
        entries = (
            AuditLog.query.filter_by(poll_id=poll.id)
            .order_by(AuditLog.id.desc())
            .limit(200)
            .all()
        )
        return {"ok": True, "audit_logs": [serialize_audit_log(entry) for entry in entries]}

    @app.route("/api/v1/admin/polls/<int:poll_id>/ties")
    @login_required
    def poll_ties(poll_id):
        poll = _managed_poll(poll_id)
        try:
            places = int(request.args.get("places", 1))
        except ValueError:
            places = 1
        places = places if places >= 1 else 1

        team_ids = [team.id for team in poll.teams]
        results = tally_poll_results(poll, poll.votes, team_ids)
        tied = find_tied_teams(results, places=places)

        return {
            "ok": True,
            "places": places,
            "is_tie": bool(tied),
            "tied_team_ids": tied,
            "cutoff_score": results[places - 1]["total_score"] if tied else None,
        }

    @app.route("/api/v1/admin/polls/<int:poll_id>/tie-breaker", methods=["POST"])
    @login_required
    def create_tie_breaker(poll_id):
        parent = _managed_poll(poll_id)
        data = json_body()

        raw_team_ids = data.get("tied_team_ids")
        tied_team_ids = []
        if isinstance(raw_team_ids, list):
            for raw in raw_team_ids:
                try:
                    team_id = int(raw)
                except (TypeError, ValueError):
                    return {"ok": False, "error": f"Invalid team ID: {raw}"}, 400
                if team_id not in tied_team_ids:
                    tied_team_ids.append(team_id)
        if len(tied_team_ids) < 2:
            return {"ok": False, "error": "At least 2 tied team IDs are required."}, 400

        name = text_field(data, "name")
        start_time = parse_datetime(data.get("start_time"))
        end_time = parse_datetime(data.get("end_time"))
        if not name or start_time is None or end_time is None:
            return {
                "ok": False,
                "error": "Poll name, start time, and end time are required.",
            }, 400
        if end_time <= start_time:
            return {"ok": False, "error": "end_time must be after start_time."}, 400

        teams_by_id = {team.id: team for team in parent.teams}
        selected = []
        for team_id in tied_team_ids:
            team = teams_by_id.get(team_id)
            if team is None:
                return {
                    "ok": False,
                    "error": f"Team {team_id} not found in original poll.",
                }, 400
            selected.append(team)

        poll = Poll(
            name=name,
            start_time=start_time,
            end_time=end_time,
            created_by=current_user.id,
            parent_poll_id=parent.id,
            hackathon_id=parent.hackathon_id,
            is_tie_breaker=True,
            **tie_breaker_settings(parent),
        )
        db.session.add(poll)
        db.session.flush()

        for team in selected:
            db.session.add(
                Team(
                    poll_id=poll.id,
                    hackathon_id=poll.hackathon_id,
                    name=team.name,
                    project_name=team.project_name,
                    project_description=team.project_description,
                )
            )
        db.session.commit()

        current_app.logger.info(
            "Admin %s created tie-breaker poll %s for poll %s with teams %s",
            current_user.id,
            poll.id,
            parent.id,
            [team.id for team in selected],
        )
        log_audit(
            "tie_breaker_created",
            user_id=current_user.id,
            poll_id=poll.id,
            role="admin",
            details={"parent_poll_id": parent.id, "team_ids": tied_team_ids},
        )
        return {
            "ok": True,
            "poll": serialize_poll(poll),
            "teams": [serialize_team(team) for team in poll.teams],
        }, 201

    @app.route("/api/v1/admin/api-keys", methods=["POST"])
    @login_required
    def create_api_key():
        data = json_body()
        name = text_field(data, "name")
        if not name:
            return {"ok": False, "error": "API key name is required."}, 400

        key = generate_api_key()
        api_key = ApiKey(admin_id=current_user.id, name=name, key_hash=hash_token(key))
        db.session.add(api_key)
        db.session.commit()
        log_audit("api_key_created", user_id=current_user.id, details={"api_key_id": api_key.id})
        return {"ok": True, "id": api_key.id, "name": api_key.name, "key": key}, 201

    @app.route("/api/v1/admin/api-keys/<int:api_key_id>/revoke", methods=["POST"])
    @login_required
    def revoke_api_key(api_key_id):
        api_key = ApiKey.query.get_or_404(api_key_id)
        if api_key.admin_id != current_user.id and not current_user.is_super_admin:
            abort(403, description="Access denied.")

        api_key.revoked = True
        db.session.commit()
        log_audit("api_key_revoked", user_id=current_user.id, details={"api_key_id": api_key.id})
        current_app.logger.info("API key %s revoked by admin %s", api_key.id, current_user.id)
        return {"ok": True}
