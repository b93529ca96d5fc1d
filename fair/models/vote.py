from fair.extensions import db
from fair.models.poll import utcnow


class Vote(db.Model):
    __tablename__ = "votes"
    __table_args__ = (
        db.UniqueConstraint("poll_id", "judge_email", name="uq_votes_poll_judge"),
    )

    id = db.Column(db.Integer, primary_key=True)
    poll_id = db.Column(db.Integer, db.ForeignKey("polls.id"), nullable=False)
    vote_type = db.Column(db.String(10), nullable=False)
    token_hash = db.Column(db.String(64), unique=True, nullable=True)
    judge_email = db.Column(db.String(200), nullable=True)

    team_id_target = db.Column(db.Integer, nullable=True)
    teams = db.Column(db.JSON, nullable=True)
    rankings = db.Column(db.JSON, nullable=True)

    vote_hash = db.Column(db.String(64), nullable=True)
    tx_hash = db.Column(db.String(100), nullable=True, index=True)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow)

    def ballot(self):
        return {
            "team_id_target": self.team_id_target,
            "teams": self.teams,
            "rankings": self.rankings,
        }
