from flask_login import UserMixin

from fair.extensions import db


class Admin(UserMixin, db.Model):
    __tablename__ = "admins"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(200), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default="admin")

    polls = db.relationship("Poll", backref="creator", lazy=True)
    api_keys = db.relationship("ApiKey", backref="admin", lazy=True)
    hackathons = db.relationship("Hackathon", backref="creator", lazy=True)

    @property
    def is_super_admin(self):
        return self.role == "super_admin"

    def can_manage_hackathon(self, hackathon):
        return self.is_super_admin or hackathon.created_by == self.id

    def can_manage(self, poll):
        if self.is_super_admin or poll.created_by == self.id:
            return True
        return poll.hackathon is not None and poll.hackathon.created_by == self.id
