from fair.extensions import db


class VoterToken(db.Model):
    __tablename__ = "voter_tokens"

    id = db.Column(db.Integer, primary_key=True)
    poll_id = db.Column(db.Integer, db.ForeignKey("polls.id"), nullable=False)
    token_hash = db.Column(db.String(64), unique=True, nullable=False)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=True)
    email = db.Column(db.String(200), nullable=True)
    used = db.Column(db.Boolean, nullable=False, default=False)
