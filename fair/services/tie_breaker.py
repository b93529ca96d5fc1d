TIE_BREAKER_COPIED_SETTINGS = (
    "voting_mode",
    "voting_permissions",
    "voter_weight",
    "judge_weight",
    "rank_points_config",
    "max_ranked_positions",
    "min_voter_participation",
    "min_judge_participation",
    "allow_self_vote",
    "is_public_results",
)


def find_tied_teams(results, places=1):
    """Return the team ids sharing the score at the last prize place.

    ``results`` must already be sorted by ``total_score`` descending. Only a
    score group that straddles the cutoff counts as a tie: if the teams at
    ``places`` and ``places + 1`` differ in score, the prize places are
    decided and nothing is returned.
    """
    if places < 1 or len(results) <= places:
        return []

    cutoff_score = results[places - 1]["total_score"]
    if results[places]["total_score"] != cutoff_score:
        return []

    return [row["team_id"] for row in results if row["total_score"] == cutoff_score]


def tie_breaker_settings(poll):
    return {field: getattr(poll, field) for field in TIE_BREAKER_COPIED_SETTINGS}
