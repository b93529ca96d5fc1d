from fair.services.tally.quorum import tally_quorum
from fair.services.tally.ranked import is_team_id, rank_points
from fair.services.tally.results import tally_poll, tally_poll_results

__all__ = [
    "is_team_id",
    "rank_points",
    "tally_poll",
    "tally_poll_results",
    "tally_quorum",
]
