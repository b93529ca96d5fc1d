from fair.extensions import db


class Judge(db.Model):
    __tablename__ = "judges"
    __table_args__ = (
        db.UniqueConstraint("poll_id", "email", name="uq_judges_poll_email"),
    )

    id = db.Column(db.Integer, primary_key=True)
    poll_id = db.Column(db.Integer, db.ForeignKey("polls.id"), nullable=False)
    email = db.Column(db.String(200), nullable=False)
    name = db.Column(db.String(200), nullable=True)
