from datetime import timezone

from flask import abort, current_app
from flask_login import current_user
from sqlalchemy.exc import IntegrityError

from fair.extensions import db
from fair.models import Judge, Poll, Team, Vote, VoterToken
from fair.models.poll import utcnow
from fair.routes.payload import json_body, text_field
from fair.services.anchoring import anchor_vote, compute_vote_hash, explorer_url
from fair.services.audit import log_audit
from fair.services.reporting import (
    build_results_payload,
    dangling_team_refs,
    serialize_anchored_vote,
    serialize_poll,
    serialize_team,
)
from fair.services.security import hash_token


def _as_int(value):
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_rank(value):
    if isinstance(value, bool):
        return None
    try:
        rank = int(value)
    except (TypeError, ValueError):
        return None
    return rank if rank >= 1 else None


def parse_ballot(poll, data, team_ids, own_team_id=None):
    """Validate a submitted ballot against the poll; return (ballot, error)."""
    ballot = {"team_id_target": None, "teams": None, "rankings": None}

    def self_vote(team_id):
        return (
            own_team_id is not None
            and not poll.allow_self_vote
            and team_id == own_team_id
        )

    if poll.voting_mode == "single":
        team_id = _as_int(data.get("team_id_target"))
        if team_id is None:
            return None, "team_id_target is required for single vote mode."
        if team_id not in team_ids:
            return None, "Invalid target team."
        if self_vote(team_id):
            return None, "Self-voting is not allowed."
        ballot["team_id_target"] = team_id

    elif poll.voting_mode == "multiple":
        raw_teams = data.get("teams")
        if not isinstance(raw_teams, list) or not raw_teams:
            return None, "teams list is required for multiple vote mode."
        teams = []
        for raw in raw_teams:
            team_id = _as_int(raw)
            if team_id is None or team_id not in team_ids:
                return None, f"Invalid team ID: {raw}"
            if self_vote(team_id):
                return None, "Self-voting is not allowed."
            if team_id not in teams:
                teams.append(team_id)
        ballot["teams"] = teams

    else:
        raw_rankings = data.get("rankings")
        if not isinstance(raw_rankings, list) or not raw_rankings:
            return None, "rankings list is required for ranked vote mode."
        if (
            poll.max_ranked_positions is not None
            and len(raw_rankings) > poll.max_ranked_positions
        ):
            return None, f"At most {poll.max_ranked_positions} teams may be ranked."

        rankings = []
        ranked_team_ids = set()
        for raw in raw_rankings:
            if not isinstance(raw, dict):
                return None, "Each ranking must be an object with team_id and rank."
            team_id = _as_int(raw.get("team_id"))
            rank = _as_rank(raw.get("rank"))
            if team_id is None or team_id not in team_ids:
                return None, f"Invalid team ID: {raw.get('team_id')}"
            if rank is None:
                return None, f"Invalid rank for team {team_id}."
            if team_id in ranked_team_ids:
                return None, f"Duplicate team ID in rankings: {team_id}"
            if self_vote(team_id):
                return None, "Self-voting is not allowed."
            ranked_team_ids.add(team_id)

            entry = {"team_id": team_id, "rank": rank}
            reason = raw.get("reason")
            if reason is not None and not isinstance(reason, str):
                return None, f"Ranking reason for team {team_id} must be a string."
            reason = (reason or "").strip()
            if reason:
                entry["reason"] = reason
            rankings.append(entry)
        ballot["rankings"] = rankings

    return ballot, None


def _voting_info(poll):
    return {
        "poll_id": poll.id,
        "name": poll.name,
        "voting_mode": poll.voting_mode,
        "voting_permissions": poll.voting_permissions,
        "allow_self_vote": poll.allow_self_vote,
        "rank_points_config": poll.rank_points_config,
        "max_ranked_positions": poll.max_ranked_positions,
    }


def _existing_vote(vote, voting_mode):
    return {
        "vote_id": vote.id,
        "vote_type": vote.vote_type,
        "voting_mode": voting_mode,
        "team_id_target": vote.team_id_target,
        "teams": vote.teams,
        "rankings": vote.rankings,
        "timestamp": vote.timestamp.isoformat() if vote.timestamp else None,
        "tx_hash": vote.tx_hash,
        "explorer_url": explorer_url(vote.tx_hash),
    }


def check_voter_token(token):
    """Tell a voter whether ``token`` can vote now, and on which teams.

    Returns ``(body, status)`` so the public and API-key routes answer alike.
    """
    if not token:
        return {"ok": False, "error": "Token is required."}, 400

    token_hash = hash_token(token)
    token_record = VoterToken.query.filter_by(token_hash=token_hash).first()
    if not token_record:
        return {"ok": False, "error": "Invalid token."}, 400
    if token_record.used:
        return {"ok": False, "error": "Token has already been used."}, 400

    poll = db.session.get(Poll, token_record.poll_id)
    if poll is None:
        return {"ok": False, "error": "Poll not found."}, 404
    if not poll.is_active():
        return {"ok": False, "error": "Poll is not currently active."}, 400

    voter_team = (
        db.session.get(Team, token_record.team_id)
        if token_record.team_id is not None
        else None
    )
    if poll.allow_self_vote:
        available = list(poll.teams)
    else:
        available = [team for team in poll.teams if team.id != token_record.team_id]

    body = {
        "ok": True,
        "valid": True,
        "already_voted": False,
        "poll": _voting_info(poll),
        "voter_team": serialize_team(voter_team) if voter_team else None,
        "available_teams": [serialize_team(team) for team in available],
    }

    existing = Vote.query.filter_by(token_hash=token_hash).first()
    if existing:
        body["already_voted"] = True
        body["existing_vote"] = _existing_vote(existing, poll.voting_mode)
    return body, 200


def check_judge(poll_id, judge_email):
    if poll_id is None or not judge_email:
        return {"ok": False, "error": "poll_id and judge_email are required."}, 400

    poll = db.session.get(Poll, poll_id)
    if poll is None:
        return {"ok": False, "error": "Poll not found."}, 404
    if poll.voting_permissions == "voters_only":
        return {"ok": False, "error": "This poll only allows voters to vote."}, 403
    if not Judge.query.filter_by(poll_id=poll.id, email=judge_email).first():
        return {
            "ok": False,
            "error": "You are not authorized as a judge for this poll.",
        }, 403
    if not poll.is_active():
        return {"ok": False, "error": "Poll is not currently active."}, 400

    body = {
        "ok": True,
        "valid": True,
        "already_voted": False,
        "poll": _voting_info(poll),
        "available_teams": [serialize_team(team) for team in poll.teams],
    }

    existing = Vote.query.filter_by(poll_id=poll.id, judge_email=judge_email).first()
    if existing:
        body["already_voted"] = True
        body["existing_vote"] = _existing_vote(existing, poll.voting_mode)
    return body, 200


def log_dangling_votes(poll, teams, votes):
    dangling = dangling_team_refs(votes, [team.id for team in teams])
    if dangling:
        current_app.logger.warning(
            "Poll %s has ballots naming unknown teams %s; they are left out of the tally",
            poll.id,
            dangling,
        )


def can_view_results(poll):
    if poll.is_public_results:
        return True
    return current_user.is_authenticated and current_user.can_manage(poll)


def register_public_routes(app):
    @app.route("/api/v1/polls/<int:poll_id>")
    def poll_detail_public(poll_id):
        poll = Poll.query.get_or_404(poll_id)
        return {
            "ok": True,
            "poll": serialize_poll(poll),
            "teams": [serialize_team(team) for team in poll.teams],
        }

    @app.route("/api/v1/vote/validate", methods=["POST"])
    def validate_token():
        data = json_body()
        return check_voter_token(text_field(data, "token"))

    @app.route("/api/v1/vote/validate-judge", methods=["POST"])
    def validate_judge():
        data = json_body()
        return check_judge(
            _as_int(data.get("poll_id")), text_field(data, "judge_email").lower()
        )

    @app.route("/api/v1/vote/submit", methods=["POST"])
    def submit_vote():
        data = json_body()
        token = text_field(data, "token")
        judge_email = text_field(data, "judge_email").lower()

        token_record = None
        token_hash = None
        own_team_id = None

        if token:
            vote_type = "voter"
            token_hash = hash_token(token)
            token_record = VoterToken.query.filter_by(token_hash=token_hash).first()
            if not token_record:
                return {"ok": False, "error": "Invalid token."}, 400
            poll = db.session.get(Poll, token_record.poll_id)
            if poll is None:
                abort(404, description="Poll not found.")
            if poll.voting_permissions == "judges_only":
                return {"ok": False, "error": "This poll only allows judges to vote."}, 403
            if token_record.used or Vote.query.filter_by(token_hash=token_hash).first():
                return {"ok": False, "error": "This token has already been used."}, 409
            own_team_id = token_record.team_id
        elif judge_email and data.get("poll_id") is not None:
            vote_type = "judge"
            poll_id = _as_int(data.get("poll_id"))
            poll = db.session.get(Poll, poll_id) if poll_id is not None else None
            if poll is None:
                abort(404, description="Poll not found.")
            if poll.voting_permissions == "voters_only":
                return {"ok": False, "error": "This poll only allows voters to vote."}, 403
            judge = Judge.query.filter_by(poll_id=poll.id, email=judge_email).first()
            if not judge:
                return {
                    "ok": False,
                    "error": "You are not authorized as a judge for this poll.",
                }, 403
            if Vote.query.filter_by(poll_id=poll.id, judge_email=judge_email).first():
                return {"ok": False, "error": "You have already voted in this poll."}, 409
        else:
            return {
                "ok": False,
                "error": "Either token (voters) or judge_email and poll_id (judges) is required.",
            }, 400

        now = utcnow()
        if not poll.is_active(now):
            return {"ok": False, "error": "Poll is not currently active."}, 400

        team_ids = {team.id for team in poll.teams}
        ballot, error = parse_ballot(poll, data, team_ids, own_team_id=own_team_id)
        if error:
            return {"ok": False, "error": error}, 400

        timestamp = int(now.replace(tzinfo=timezone.utc).timestamp())
        vote_hash = compute_vote_hash(
            token or judge_email, poll.id, poll.voting_mode, ballot, timestamp
        )

        vote = Vote(
            poll_id=poll.id,
            vote_type=vote_type,
            token_hash=token_hash,
            judge_email=judge_email if vote_type == "judge" else None,
            vote_hash=vote_hash,
            timestamp=now,
            **ballot,
        )
        db.session.add(vote)
        if token_record is not None:
            token_record.used = True

        # The ballot must claim its token or judge slot before it is anchored.
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.warning(
                "Duplicate %s ballot rejected for poll %s", vote_type, poll.id
            )
            return {"ok": False, "error": "A vote has already been recorded."}, 409

        tx_hash = anchor_vote(
            vote_hash,
            {
                "poll_id": poll.id,
                "vote_type": vote_type,
                "voting_mode": poll.voting_mode,
                "timestamp": timestamp,
                "vote_hash": vote_hash,
                "token_hash": token_hash,
                "judge_email": judge_email or None,
                **ballot,
            },
        )
        vote.tx_hash = tx_hash

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.warning(
                "Duplicate %s ballot rejected for poll %s; anchored transaction %s "
                "has no stored vote",
                vote_type,
                poll.id,
                tx_hash,
            )
            return {"ok": False, "error": "A vote has already been recorded."}, 409

        log_audit(
            "vote_submitted",
            poll_id=poll.id,
            role=vote_type,
            details={"vote_id": vote.id, "vote_hash": vote_hash, "tx_hash": tx_hash},
        )
        current_app.logger.info(
            "Recorded %s vote %s for poll %s (tx=%s)", vote_type, vote.id, poll.id, tx_hash
        )
        return {
            "ok": True,
            "vote_id": vote.id,
            "vote_hash": vote_hash,
            "tx_hash": tx_hash,
            "explorer_url": explorer_url(tx_hash),
            "timestamp": vote.timestamp.isoformat(),
        }, 201

    @app.route("/api/v1/vote/blockchain/<tx_hash>")
    def anchored_vote(tx_hash):
        vote = Vote.query.filter_by(tx_hash=tx_hash).first_or_404()
        return {
            "ok": True,
            "poll_id": vote.poll_id,
            "vote": serialize_anchored_vote(vote, vote.poll.voting_mode),
        }

    @app.route("/api/v1/results/<int:poll_id>")
    def poll_results(poll_id):
        poll = Poll.query.get_or_404(poll_id)
        if not can_view_results(poll):
            abort(403, description="Results are not publicly available.")

        teams = Team.query.filter_by(poll_id=poll.id).order_by(Team.id).all()
        votes = Vote.query.filter_by(poll_id=poll.id).order_by(Vote.id).all()

        log_dangling_votes(poll, teams, votes)
        payload = build_results_payload(poll, teams, votes)
        return {"ok": True, **payload}
