from fair.services.anchoring import explorer_url
from fair.services.tally import is_team_id, tally_poll


def serialize_poll(poll):
    return {
        "id": poll.id,
        "name": poll.name,
        "start_time": poll.start_time.isoformat() if poll.start_time else None,
        "end_time": poll.end_time.isoformat() if poll.end_time else None,
        "voting_mode": poll.voting_mode,
        "voting_permissions": poll.voting_permissions,
        "voter_weight": poll.voter_weight,
        "judge_weight": poll.judge_weight,
        "rank_points_config": poll.rank_points_config,
        "max_ranked_positions": poll.max_ranked_positions,
        "min_voter_participation": poll.min_voter_participation,
        "min_judge_participation": poll.min_judge_participation,
        "allow_self_vote": poll.allow_self_vote,
        "is_public_results": poll.is_public_results,
        "parent_poll_id": poll.parent_poll_id,
        "is_tie_breaker": poll.is_tie_breaker,
        "hackathon_id": poll.hackathon_id,
    }


def serialize_team(team):
    return {
        "id": team.id,
        "name": team.name,
        "project_name": team.project_name,
        "project_description": team.project_description,
        "hackathon_id": team.hackathon_id,
    }


def serialize_anchored_vote(vote, voting_mode):
    return {
        "vote_id": vote.id,
        "vote_type": vote.vote_type,
        "voting_mode": voting_mode,
        "timestamp": vote.timestamp.isoformat() if vote.timestamp else None,
        "tx_hash": vote.tx_hash,
        "explorer_url": explorer_url(vote.tx_hash),
        **vote.ballot(),
    }


def build_results_payload(poll, teams, votes):
    team_names = {team.id: team.name for team in teams}
    tally = tally_poll(poll, votes, [team.id for team in teams])

    team_rows = []
    for row in tally["results"]:
        position_counts = row["position_counts"]
        team_rows.append(
            {
                **row,
                "team_name": team_names.get(row["team_id"], "Unknown"),
                "vote_count": row["voter_votes"] + row["judge_votes"],
                "position_counts": (
                    {str(rank): count for rank, count in position_counts.items()}
                    if position_counts is not None
                    else None
                ),
            }
        )

    return {
        "poll": serialize_poll(poll),
        "results": {
            "teams": team_rows,
            "total_votes": tally["total_votes"],
            "voter_votes": tally["voter_ballots"],
            "judge_votes": tally["judge_ballots"],
            "quorum_status": tally["quorum"],
            "votes": [
                serialize_anchored_vote(vote, poll.voting_mode)
                for vote in votes
                if vote.tx_hash
            ],
        },
    }


def dangling_team_refs(votes, team_ids):
    """Team ids named by ballots that are not part of the poll's team set."""
    known = set(team_ids)
    dangling = set()
    for vote in votes:
        named = []
        if vote.team_id_target is not None:
            named.append(vote.team_id_target)
        if isinstance(vote.teams, list):
            named.extend(vote.teams)
        if isinstance(vote.rankings, list):
            named.extend(
                entry.get("team_id") for entry in vote.rankings if isinstance(entry, dict)
            )
        dangling.update(
            team_id for team_id in named if is_team_id(team_id) and team_id not in known
        )
    return sorted(dangling, key=str)
