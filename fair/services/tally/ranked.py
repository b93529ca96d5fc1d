def _is_rank(value):
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def is_team_id(value):
    """Stored ballots may hold anything; only ints and strings can name a team."""
    return isinstance(value, (int, str)) and not isinstance(value, bool)


def rank_points(rank, rank_points_config, team_count):
    """Points awarded for placing a team at ``rank`` (1 = best).

    An explicit ``rank_points_config`` entry keyed by ``str(rank)`` always
    wins. Otherwise the linear default applies: rank 1 of ``team_count``
    teams scores ``team_count`` and each following rank one less, never
    dropping below zero. A config that is not a mapping is ignored.
    """
    config = rank_points_config if isinstance(rank_points_config, dict) else {}
    configured = config.get(str(rank))
    if isinstance(configured, (int, float)) and not isinstance(configured, bool):
        return configured
    return max(team_count - rank + 1, 0)


def iter_ballot_rankings(rankings):
    """Yield ``(team_id, rank)`` pairs from a stored rankings list.

    Entries that are not mappings, name a team with something other than an
    int or string, or carry a non-positive / non-integer rank are dropped, as
    is any repeat of a team already ranked on the ballot.
    """
    if not isinstance(rankings, list):
        return

    seen = set()
    for entry in rankings:
        if not isinstance(entry, dict):
            continue
        team_id = entry.get("team_id")
        rank = entry.get("rank")
        if not is_team_id(team_id) or not _is_rank(rank) or team_id in seen:
            continue
        seen.add(team_id)
        yield team_id, rank
