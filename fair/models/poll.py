from datetime import datetime, timezone

from fair.extensions import db

VOTING_MODES = ("single", "multiple", "ranked")
VOTING_PERMISSIONS = ("voters_and_judges", "voters_only", "judges_only")


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Poll(db.Model):
    __tablename__ = "polls"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("admins.id"), nullable=True)
    hackathon_id = db.Column(
        db.Integer, db.ForeignKey("hackathons.id"), nullable=True, index=True
    )
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)

    voting_mode = db.Column(db.String(20), nullable=False, default="single")
    voting_permissions = db.Column(
        db.String(30), nullable=False, default="voters_and_judges"
    )
    voter_weight = db.Column(db.Float, nullable=False, default=1.0)
    judge_weight = db.Column(db.Float, nullable=False, default=1.0)
    rank_points_config = db.Column(db.JSON, nullable=True)
    max_ranked_positions = db.Column(db.Integer, nullable=True)
    min_voter_participation = db.Column(db.Integer, nullable=True)
    min_judge_participation = db.Column(db.Integer, nullable=True)

    allow_self_vote = db.Column(db.Boolean, nullable=False, default=False)
    is_public_results = db.Column(db.Boolean, nullable=False, default=False)

    parent_poll_id = db.Column(db.Integer, db.ForeignKey("polls.id"), nullable=True)
    is_tie_breaker = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    teams = db.relationship(
        "Team", backref="poll", lazy=True, order_by="Team.id"
    )
    votes = db.relationship("Vote", backref="poll", lazy=True, order_by="Vote.id")
    voter_tokens = db.relationship("VoterToken", backref="poll", lazy=True)
    judges = db.relationship("Judge", backref="poll", lazy=True)

    def is_active(self, now=None):
        now = now or utcnow()
        return self.start_time <= now <= self.end_time
