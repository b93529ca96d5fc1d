from fair.extensions import db


class Team(db.Model):
    __tablename__ = "teams"

    id = db.Column(db.Integer, primary_key=True)
    poll_id = db.Column(db.Integer, db.ForeignKey("polls.id"), nullable=False)
    hackathon_id = db.Column(
        db.Integer, db.ForeignKey("hackathons.id"), nullable=True, index=True
    )
    name = db.Column(db.String(200), nullable=False)
    project_name = db.Column(db.String(200), nullable=True)
    project_description = db.Column(db.Text, nullable=True)
