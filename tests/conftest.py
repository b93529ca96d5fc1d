from datetime import timedelta
from pathlib import Path
import sys

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from fair import create_app
from fair.extensions import db
from fair.models import Admin, Judge, Poll, Team, VoterToken
from fair.models.poll import utcnow
from fair.services.security import hash_token


def fake_anchor(vote_hash, payload):
    return "0x" + vote_hash


@pytest.fixture()
def app(tmp_path: Path):
    db_file = tmp_path / "test.sqlite3"
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_file}",
            "SQLALCHEMY_ENGINE_OPTIONS": {},
            "ANCHOR_SERVICE": fake_anchor,
            "ANCHOR_EXPLORER_URL": "https://explorer.test/tx",
        }
    )

    with app.app_context():
        driver = db.engine.url.drivername
        if driver != "sqlite":
            raise RuntimeError(
                f"Test database must be SQLite, got '{driver}'. Refusing to run destructive test setup."
            )
        db.drop_all()
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def db_session(app):
    with app.app_context():
        yield db.session


@pytest.fixture()
def admin_user(db_session):
    user = Admin(
        username="admin1",
        email="admin1@example.com",
        password_hash="hashed-password",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def other_admin_user(db_session):
    user = Admin(
        username="admin2",
        email="admin2@example.com",
        password_hash="hashed-password",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def auth_client(client, admin_user):
    with client.session_transaction() as session:
        session["_user_id"] = str(admin_user.id)
        session["_fresh"] = True
    return client


@pytest.fixture()
def make_poll(db_session, admin_user):
    """Create an active poll owned by ``admin_user`` with the named teams."""

    def _make_poll(team_names=("Alpha", "Beta", "Gamma"), **settings):
        now = utcnow()
        settings.setdefault("name", "Finals")
        settings.setdefault("start_time", now - timedelta(hours=1))
        settings.setdefault("end_time", now + timedelta(hours=1))
        poll = Poll(created_by=admin_user.id, **settings)
        db_session.add(poll)
        db_session.flush()
        for name in team_names:
            db_session.add(Team(poll_id=poll.id, name=name))
        db_session.commit()
        return poll

    return _make_poll


@pytest.fixture()
def issue_token(db_session):
    def _issue_token(poll, plain, team=None):
        db_session.add(
            VoterToken(
                poll_id=poll.id,
                token_hash=hash_token(plain),
                team_id=team.id if team is not None else None,
            )
        )
        db_session.commit()
        return plain

    return _issue_token


@pytest.fixture()
def add_judge(db_session):
    def _add_judge(poll, email):
        db_session.add(Judge(poll_id=poll.id, email=email))
        db_session.commit()
        return email

    return _add_judge
