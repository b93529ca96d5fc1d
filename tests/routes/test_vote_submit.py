from datetime import timedelta
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fair.extensions import db
from fair.models import AuditLog, Team, Vote, VoterToken
from fair.models.poll import utcnow


def test_voter_single_vote_is_recorded_and_anchored(client, make_poll, issue_token):
    poll = make_poll(voting_mode="single")
    team = poll.teams[1]
    token = issue_token(poll, "voter-token-1")

    response = client.post(
        "/api/v1/vote/submit", json={"token": token, "team_id_target": team.id}
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["ok"] is True
    assert body["tx_hash"] == "0x" + body["vote_hash"]
    assert body["explorer_url"] == f"https://explorer.test/tx/{body['tx_hash']}"

    vote = Vote.query.one()
    assert vote.vote_type == "voter"
    assert vote.team_id_target == team.id
    assert vote.judge_email is None
    assert VoterToken.query.one().used is True


def test_token_cannot_vote_twice(client, make_poll, issue_token):
    poll = make_poll(voting_mode="single")
    token = issue_token(poll, "voter-token-1")
    team_id = poll.teams[0].id

    first = client.post("/api/v1/vote/submit", json={"token": token, "team_id_target": team_id})
    second = client.post("/api/v1/vote/submit", json={"token": token, "team_id_target": team_id})

    assert first.status_code == 201
    assert second.status_code == 409
    assert Vote.query.count() == 1


def test_invalid_token_is_rejected(client, make_poll):
    poll = make_poll(voting_mode="single")

    response = client.post(
        "/api/v1/vote/submit",
        json={"token": "nope", "team_id_target": poll.teams[0].id},
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "Invalid token."


def test_judge_vote_once_per_poll(client, make_poll, add_judge):
    poll = make_poll(voting_mode="multiple")
    email = add_judge(poll, "judge@example.com")
    payload = {
        "judge_email": "Judge@Example.com",
        "poll_id": poll.id,
        "teams": [poll.teams[0].id, poll.teams[2].id],
    }

    first = client.post("/api/v1/vote/submit", json=payload)
    second = client.post("/api/v1/vote/submit", json=payload)

    assert first.status_code == 201
    assert second.status_code == 409
    vote = Vote.query.one()
    assert vote.judge_email == email
    assert vote.teams == [poll.teams[0].id, poll.teams[2].id]


def test_unlisted_judge_is_forbidden(client, make_poll):
    poll = make_poll(voting_mode="single")

    response = client.post(
        "/api/v1/vote/submit",
        json={
            "judge_email": "stranger@example.com",
            "poll_id": poll.id,
            "team_id_target": poll.teams[0].id,
        },
    )

    assert response.status_code == 403


def test_unknown_team_is_rejected(client, make_poll, issue_token):
    poll = make_poll(voting_mode="single")
    token = issue_token(poll, "voter-token-1")

    response = client.post("/api/v1/vote/submit", json={"token": token, "team_id_target": 9999})

    assert response.status_code == 400
    assert Vote.query.count() == 0
    assert VoterToken.query.one().used is False


def test_inactive_poll_rejects_votes(client, make_poll, issue_token):
    now = utcnow()
    poll = make_poll(
        voting_mode="single",
        start_time=now - timedelta(hours=3),
        end_time=now - timedelta(hours=1),
    )
    token = issue_token(poll, "voter-token-1")

    response = client.post(
        "/api/v1/vote/submit", json={"token": token, "team_id_target": poll.teams[0].id}
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "Poll is not currently active."


def test_self_vote_is_blocked_unless_allowed(client, make_poll, issue_token):
    poll = make_poll(voting_mode="single", allow_self_vote=False)
    own_team = poll.teams[0]
    token = issue_token(poll, "voter-token-1", team=own_team)

    response = client.post(
        "/api/v1/vote/submit", json={"token": token, "team_id_target": own_team.id}
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "Self-voting is not allowed."


def test_ranked_ballot_respects_max_positions(client, make_poll, issue_token):
    poll = make_poll(voting_mode="ranked", max_ranked_positions=2)
    token = issue_token(poll, "voter-token-1")
    rankings = [
        {"team_id": team.id, "rank": index + 1} for index, team in enumerate(poll.teams)
    ]

    response = client.post("/api/v1/vote/submit", json={"token": token, "rankings": rankings})

    assert response.status_code == 400
    assert "At most 2" in response.get_json()["error"]


def test_ranked_ballot_rejects_duplicate_team(client, make_poll, issue_token):
    poll = make_poll(voting_mode="ranked")
    token = issue_token(poll, "voter-token-1")
    team_id = poll.teams[0].id

    response = client.post(
        "/api/v1/vote/submit",
        json={
            "token": token,
            "rankings": [{"team_id": team_id, "rank": 1}, {"team_id": team_id, "rank": 2}],
        },
    )

    assert response.status_code == 400


def test_ranked_ballot_is_stored(client, make_poll, issue_token):
    poll = make_poll(voting_mode="ranked")
    token = issue_token(poll, "voter-token-1")
    alpha, beta, _ = poll.teams

    response = client.post(
        "/api/v1/vote/submit",
        json={
            "token": token,
            "rankings": [
                {"team_id": beta.id, "rank": 1, "reason": "Great demo"},
                {"team_id": alpha.id, "rank": 2},
            ],
        },
    )

    assert response.status_code == 201
    assert Vote.query.one().rankings == [
        {"team_id": beta.id, "rank": 1, "reason": "Great demo"},
        {"team_id": alpha.id, "rank": 2},
    ]


def test_judges_only_poll_rejects_voter_tokens(client, make_poll, issue_token):
    poll = make_poll(voting_mode="single", voting_permissions="judges_only")
    token = issue_token(poll, "voter-token-1")

    response = client.post(
        "/api/v1/vote/submit", json={"token": token, "team_id_target": poll.teams[0].id}
    )

    assert response.status_code == 403


def test_vote_recorded_without_anchor_service(app, client, make_poll, issue_token):
    app.config["ANCHOR_SERVICE"] = None
    poll = make_poll(voting_mode="single")
    token = issue_token(poll, "voter-token-1")

    response = client.post(
        "/api/v1/vote/submit", json={"token": token, "team_id_target": poll.teams[0].id}
    )

    assert response.status_code == 201
    assert response.get_json()["tx_hash"] is None
    assert Vote.query.one().tx_hash is None


def test_anchored_vote_lookup(client, make_poll, issue_token):
    poll = make_poll(voting_mode="single")
    token = issue_token(poll, "voter-token-1")
    submitted = client.post(
        "/api/v1/vote/submit", json={"token": token, "team_id_target": poll.teams[0].id}
    ).get_json()

    response = client.get(f"/api/v1/vote/blockchain/{submitted['tx_hash']}")

    assert response.status_code == 200
    body = response.get_json()
    assert body["poll_id"] == poll.id
    assert body["vote"]["vote_id"] == submitted["vote_id"]
    assert client.get("/api/v1/vote/blockchain/0xmissing").status_code == 404


def test_missing_credentials(client):
    response = client.post("/api/v1/vote/submit", json={"team_id_target": 1})

    assert response.status_code == 400


def test_team_listing_is_public(client, make_poll):
    poll = make_poll(team_names=("Alpha", "Beta"))

    response = client.get(f"/api/v1/polls/{poll.id}")

    assert response.status_code == 200
    assert [team["name"] for team in response.get_json()["teams"]] == ["Alpha", "Beta"]
    assert Team.query.count() == 2


def test_body_must_be_a_json_object(client):
    listed = client.post("/api/v1/vote/submit", json=["token", "x"])
    scalar = client.post("/api/v1/vote/submit", json="voter-token-1")

    assert listed.status_code == 400
    assert listed.get_json() == {"ok": False, "error": "Request body must be a JSON object."}
    assert scalar.status_code == 400


def test_non_string_credentials_are_rejected(client, make_poll, issue_token):
    poll = make_poll(voting_mode="single")
    issue_token(poll, "12345")

    numeric_token = client.post(
        "/api/v1/vote/submit", json={"token": 12345, "team_id_target": poll.teams[0].id}
    )
    listed_email = client.post(
        "/api/v1/vote/submit",
        json={"judge_email": ["judge@example.com"], "poll_id": poll.id},
    )

    assert numeric_token.status_code == 400
    assert numeric_token.get_json()["error"] == "token must be a string."
    assert listed_email.status_code == 400
    assert Vote.query.count() == 0


def test_ranking_reason_must_be_text(client, make_poll, issue_token):
    poll = make_poll(voting_mode="ranked")
    token = issue_token(poll, "voter-token-1")

    response = client.post(
        "/api/v1/vote/submit",
        json={
            "token": token,
            "rankings": [{"team_id": poll.teams[0].id, "rank": 1, "reason": {"text": "great"}}],
        },
    )

    assert response.status_code == 400
    assert "reason" in response.get_json()["error"]
    assert Vote.query.count() == 0


def test_commit_conflict_logs_the_orphaned_transaction(
    client, make_poll, issue_token, monkeypatch, caplog
):
    poll = make_poll(voting_mode="single")
    token = issue_token(poll, "voter-token-1")

    def conflicting_commit(self):
        raise IntegrityError("INSERT INTO votes", {}, Exception("UNIQUE constraint failed"))

    monkeypatch.setattr(Session, "commit", conflicting_commit)
    with caplog.at_level(logging.WARNING, logger="fair"):
        response = client.post(
            "/api/v1/vote/submit", json={"token": token, "team_id_target": poll.teams[0].id}
        )

    assert response.status_code == 409
    assert "has no stored vote" in caplog.text
    assert "0x" in caplog.text
    assert Vote.query.count() == 0


def test_duplicate_ballot_is_rejected_before_anchoring(app, client, make_poll, add_judge):
    anchored = []
    app.config["ANCHOR_SERVICE"] = lambda vote_hash, payload: anchored.append(vote_hash) or "0xabc"
    poll = make_poll(voting_mode="single")
    add_judge(poll, "judge@example.com")
    db.session.add(
        Vote(
            poll_id=poll.id,
            vote_type="judge",
            judge_email="judge@example.com",
            team_id_target=poll.teams[0].id,
        )
    )
    db.session.commit()

    response = client.post(
        "/api/v1/vote/submit",
        json={
            "judge_email": "judge@example.com",
            "poll_id": poll.id,
            "team_id_target": poll.teams[1].id,
        },
    )

    assert response.status_code == 409
    assert anchored == []


def test_submitted_vote_is_audited(client, make_poll, issue_token):
    poll = make_poll(voting_mode="single")
    token = issue_token(poll, "voter-token-1")

    body = client.post(
        "/api/v1/vote/submit",
        json={"token": token, "team_id_target": poll.teams[0].id},
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
    ).get_json()

    entry = AuditLog.query.one()
    assert entry.action == "vote_submitted"
    assert entry.poll_id == poll.id
    assert entry.role == "voter"
    assert entry.details["vote_id"] == body["vote_id"]
    assert entry.ip_address == "203.0.113.7"
