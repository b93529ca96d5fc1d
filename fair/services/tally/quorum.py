def count_ballots(votes):
    voter_ballots = 0
    judge_ballots = 0
    for vote in votes:
        if vote.vote_type == "voter":
            voter_ballots += 1
        elif vote.vote_type == "judge":
            judge_ballots += 1
    return voter_ballots, judge_ballots


def tally_quorum(poll, votes):
    voter_ballots, judge_ballots = count_ballots(votes)

    voter_required = poll.min_voter_participation
    judge_required = poll.min_judge_participation

    voter_quorum_met = voter_required is None or voter_ballots >= voter_required
    judge_quorum_met = judge_required is None or judge_ballots >= judge_required

    return {
        "voter_quorum_met": voter_quorum_met,
        "judge_quorum_met": judge_quorum_met,
        "quorum_met": voter_quorum_met and judge_quorum_met,
        "voter_quorum_required": voter_required,
        "judge_quorum_required": judge_required,
        "voter_quorum_actual": voter_ballots,
        "judge_quorum_actual": judge_ballots,
    }
