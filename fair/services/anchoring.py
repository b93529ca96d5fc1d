import hashlib

from flask import current_app


def ballot_digest_input(voting_mode, ballot):
    if voting_mode == "single":
        return str(ballot.get("team_id_target"))
    if voting_mode == "multiple":
        return ",".join(sorted(str(team_id) for team_id in ballot.get("teams") or []))
    rankings = sorted(ballot.get("rankings") or [], key=lambda entry: entry["rank"])
    return ",".join(f"{entry['team_id']}:{entry['rank']}" for entry in rankings)


def compute_vote_hash(secret, poll_id, voting_mode, ballot, timestamp):
    content = ballot_digest_input(voting_mode, ballot)
    data = f"{secret}:{poll_id}:{content}:{timestamp}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def anchor_vote(vote_hash, payload):
    """Hand a vote hash to the configured anchoring service.

    Returns the transaction reference, or None when no service is configured
    or the submission fails. A failed anchor never blocks recording the vote.
    """
    service = current_app.config.get("ANCHOR_SERVICE")
    if service is None:
        current_app.logger.debug("No anchoring service configured; vote %s not anchored", vote_hash)
        return None

    try:
        return service(vote_hash, payload)
    except Exception:
        current_app.logger.exception("Anchoring failed for vote hash %s", vote_hash)
        return None


def explorer_url(tx_hash):
    if not tx_hash:
        return None
    base_url = current_app.config["ANCHOR_EXPLORER_URL"].rstrip("/")
    return f"{base_url}/{tx_hash}"
