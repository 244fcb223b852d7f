from .lifecycle import (
    Actor,
    ApplicationStatus,
    ApplyOutcome,
    JobAction,
    JobStatus,
    legal_actions,
    resolve_apply_outcome,
)
from .models import Application, Identity, JobPosting, Round, Session
from .token_store import FileTokenStore, MemoryTokenStore, SessionStore
from .refresher import TokenRefresher
from .session import SessionClient
from .jobs import CloseOutcome, JobBoard, JobDetail, JobDraft, PostOutcome

__all__ = [
    "Actor", "ApplicationStatus", "ApplyOutcome", "JobAction", "JobStatus",
    "legal_actions", "resolve_apply_outcome",
    "Application", "Identity", "JobPosting", "Round", "Session",
    "FileTokenStore", "MemoryTokenStore", "SessionStore",
    "TokenRefresher", "SessionClient",
    "CloseOutcome", "JobBoard", "JobDetail", "JobDraft", "PostOutcome",
]
