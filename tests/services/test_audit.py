from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fair.models import AuditLog
from fair.services.audit import client_ip, log_audit


def test_entry_is_written_with_request_ip(app):
    with app.test_request_context("/", headers={"X-Real-IP": "198.51.100.4"}):
        entry = log_audit("poll_created", poll_id=3, role="admin", details={"a": 1})

    stored = AuditLog.query.one()
    assert stored.id == entry.id
    assert stored.action == "poll_created"
    assert stored.ip_address == "198.51.100.4"


def test_forwarded_for_wins_over_real_ip(app):
    headers = {"X-Forwarded-For": "203.0.113.9, 10.0.0.2", "X-Real-IP": "10.0.0.2"}
    with app.test_request_context("/", headers=headers):
        assert client_ip() == "203.0.113.9"


def test_no_request_means_no_ip(app):
    entry = log_audit("maintenance")

    assert entry.ip_address is None


def test_failed_write_is_logged_not_raised(app, monkeypatch, caplog):
    def broken_commit(self):
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(Session, "commit", broken_commit)

    assert log_audit("poll_deleted", poll_id=1) is None
    assert "Could not write audit log entry poll_deleted" in caplog.text
