from flask import current_app, has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from fair.extensions import db
from fair.models import AuditLog


def client_ip():
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer."""
    if not has_request_context():
        return None
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.remote_addr


def log_audit(action, user_id=None, poll_id=None, role=None, details=None):
    """Record an audit entry in its own commit.

    Call it after the audited change is committed. A failed write is logged
    and rolled back; it never fails the request that triggered it.
    """
    entry = AuditLog(
        action=action,
        user_id=user_id,
        poll_id=poll_id,
        role=role,
        details=details,
        ip_address=client_ip(),
    )
    db.session.add(entry)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Could not write audit log entry %s", action)
        return None
    return entry


def serialize_audit_log(entry):
    return {
        "id": entry.id,
        "action": entry.action,
        "user_id": entry.user_id,
        "poll_id": entry.poll_id,
        "role": entry.role,
        "details": entry.details,
        "ip_address": entry.ip_address,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }
