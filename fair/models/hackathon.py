from fair.extensions import db
from fair.models.poll import utcnow


class Hackathon(db.Model):
    __tablename__ = "hackathons"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    start_date = db.Column(db.DateTime, nullable=True)
    end_date = db.Column(db.DateTime, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("admins.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    polls = db.relationship(
        "Poll", backref="hackathon", lazy=True, order_by="Poll.id"
    )
    teams = db.relationship(
        "Team", backref="hackathon", lazy=True, order_by="Team.id"
    )
