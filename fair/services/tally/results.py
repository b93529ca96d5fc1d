from fair.services.tally.quorum import count_ballots, tally_quorum
from fair.services.tally.ranked import is_team_id, iter_ballot_rankings, rank_points

BALLOT_CLASSES = ("voter", "judge")


def _weight(value):
    return 1.0 if value is None else float(value)


def _new_row(team_id, ranked):
    return {
        "team_id": team_id,
        "voter_points": 0.0,
        "judge_points": 0.0,
        "total_score": 0.0,
        "voter_votes": 0,
        "judge_votes": 0,
        "position_counts": {} if ranked else None,
    }


def _ballot_credits(poll, vote, team_count):
    """Yield ``(team_id, points, rank)`` for every team a ballot credits."""
    mode = poll.voting_mode

    if mode == "single":
        if is_team_id(vote.team_id_target):
            yield vote.team_id_target, 1, None
    elif mode == "multiple":
        if isinstance(vote.teams, list):
            seen = set()
            for team_id in vote.teams:
                if not is_team_id(team_id) or team_id in seen:
                    continue
                seen.add(team_id)
                yield team_id, 1, None
    elif mode == "ranked":
        for team_id, rank in iter_ballot_rankings(vote.rankings):
            points = rank_points(rank, poll.rank_points_config, team_count)
            yield team_id, points, rank


def tally_poll_results(poll, votes, team_ids, team_count=None):
    """Fold every ballot of a poll into one result row per known team.

    ``team_ids`` is the universe of valid teams, in display order. Every team
    appears exactly once in the output, zero-vote teams included. Credits for
    unknown teams are skipped. Rows come back sorted by ``total_score``
    descending; equal scores keep the order of ``team_ids``.
    """
    ranked = poll.voting_mode == "ranked"

    rows = {}
    for team_id in team_ids:
        if team_id not in rows:
            rows[team_id] = _new_row(team_id, ranked)

    if team_count is None:
        team_count = len(rows)

    weights = {
        "voter": _weight(poll.voter_weight),
        "judge": _weight(poll.judge_weight),
    }

    for vote in votes:
        ballot_class = vote.vote_type
        if ballot_class not in BALLOT_CLASSES:
            continue
        weight = weights[ballot_class]

        for team_id, points, rank in _ballot_credits(poll, vote, team_count):
            row = rows.get(team_id)
            if row is None:
                continue
            row[f"{ballot_class}_points"] += points * weight
            row[f"{ballot_class}_votes"] += 1
            if rank is not None:
                row["position_counts"][rank] = row["position_counts"].get(rank, 0) + 1

    results = list(rows.values())
    for row in results:
        row["total_score"] = row["voter_points"] + row["judge_points"]

    results.sort(key=lambda row: -row["total_score"])
    return results


def tally_poll(poll, votes, team_ids, team_count=None):
    votes = list(votes)
    voter_ballots, judge_ballots = count_ballots(votes)

    return {
        "results": tally_poll_results(poll, votes, team_ids, team_count=team_count),
        "total_votes": len(votes),
        "voter_ballots": voter_ballots,
        "judge_ballots": judge_ballots,
        "quorum": tally_quorum(poll, votes),
    }
