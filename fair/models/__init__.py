from fair.models.admin import Admin
from fair.models.api_key import ApiKey
from fair.models.audit_log import AuditLog
from fair.models.hackathon import Hackathon
from fair.models.judge import Judge
from fair.models.poll import Poll
from fair.models.team import Team
from fair.models.vote import Vote
from fair.models.voter_token import VoterToken

__all__ = [
    "Admin",
    "ApiKey",
    "AuditLog",
    "Hackathon",
    "Judge",
    "Poll",
    "Team",
    "Vote",
    "VoterToken",
]
