"""
Job posting and application lifecycle.

This module is the single source of truth for the status values the backend
reports and for which actor may move a job or an application between them.

Job posting::

    (none)  ->  open    (organization owner posts it)
    open  ->  ongoing   (system: application close date elapsed)
    open  ->  closed    (organization owner)
    ongoing  ->  closed (organization owner)

Application::

    (none)  ->  applied                 (candidate; resume on file, job open)
    applied ... offer_accepted|rejected (server-authored only)

Both status enums inherit from ``(str, Enum)`` so members compare equal to
the raw JSON strings. Unrecognised strings map to ``UNKNOWN`` unless strict
parsing is requested, in which case they raise ``UnknownStatusError``.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from prism.errors import TransitionError, create_transition_error, create_unknown_status_error


class JobStatus(str, Enum):
    OPEN = "open"
    ONGOING = "ongoing"
    CLOSED = "closed"
    UNKNOWN = "unknown"


class ApplicationStatus(str, Enum):
    APPLIED = "applied"
    IN_REVIEW = "in_review"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    OFFER_EXTENDED = "offer_extended"
    OFFER_ACCEPTED = "offer_accepted"
    REJECTED = "rejected"
    UNKNOWN = "unknown"


class Actor(str, Enum):
    CANDIDATE = "candidate"
    ORG_OWNER = "org_owner"
    ORG_MEMBER = "org_member"
    SYSTEM = "system"


class JobAction(str, Enum):
    APPLY = "apply"
    CLOSE = "close"


# (current, target) -> actor allowed to cause it
JOB_TRANSITIONS: dict[tuple[JobStatus, JobStatus], Actor] = {
    (JobStatus.OPEN, JobStatus.ONGOING): Actor.SYSTEM,
    (JobStatus.OPEN, JobStatus.CLOSED): Actor.ORG_OWNER,
    (JobStatus.ONGOING, JobStatus.CLOSED): Actor.ORG_OWNER,
}

# Actions a client may offer per job status, and who may take them.
JOB_ACTIONS: dict[JobStatus, dict[JobAction, Actor]] = {
    JobStatus.OPEN: {JobAction.APPLY: Actor.CANDIDATE},
    JobStatus.ONGOING: {JobAction.CLOSE: Actor.ORG_OWNER},
    JobStatus.CLOSED: {},
    JobStatus.UNKNOWN: {},
}

# New postings start at this status and only this actor may create them.
JOB_INITIAL_STATUS = JobStatus.OPEN
JOB_CREATOR = Actor.ORG_OWNER

TERMINAL_JOB_STATUSES = frozenset({JobStatus.CLOSED})
TERMINAL_APPLICATION_STATUSES = frozenset(
    {ApplicationStatus.OFFER_ACCEPTED, ApplicationStatus.REJECTED}
)

# Server-side progression order; rejection is reachable from any non-terminal status.
_APPLICATION_ORDER: tuple[ApplicationStatus, ...] = (
    ApplicationStatus.APPLIED,
    ApplicationStatus.IN_REVIEW,
    ApplicationStatus.INTERVIEW_SCHEDULED,
    ApplicationStatus.OFFER_EXTENDED,
    ApplicationStatus.OFFER_ACCEPTED,
)

ALREADY_REGISTERED_MARKER = "already registered"


def parse_job_status(value: object, strict: bool = False) -> JobStatus:
    try:
        status = JobStatus(str(value).strip().lower())
    except ValueError:
        status = JobStatus.UNKNOWN
    if status is JobStatus.UNKNOWN and strict:
        raise create_unknown_status_error("job", value)
    return status


def parse_application_status(value: object, strict: bool = False) -> ApplicationStatus:
    try:
        status = ApplicationStatus(str(value).strip().lower())
    except ValueError:
        status = ApplicationStatus.UNKNOWN
    if status is ApplicationStatus.UNKNOWN and strict:
        raise create_unknown_status_error("application", value)
    return status


@dataclass
class TransitionResult:
    """Outcome of a transition policy check."""
    allowed: bool
    is_noop: bool = False
    error_message: Optional[str] = None

    def to_dict(self) -> dict:
        result = {"allowed": self.allowed, "is_noop": self.is_noop}
        if self.error_message:
            result["error_message"] = self.error_message
        return result


def validate_job_transition(
    current: JobStatus, target: JobStatus, actor: Actor
) -> TransitionResult:
    """Check a job status change against the forward-only table.

    Staying on the same status is a noop except for ``closed``: closing a
    closed job is rejected by the backend, so it is rejected here too.
    """
    if current is JobStatus.UNKNOWN or target is JobStatus.UNKNOWN:
        return TransitionResult(
            allowed=False,
            error_message=f"Cannot transition job between '{current.value}' and '{target.value}'",
        )
    if current == target and current not in TERMINAL_JOB_STATUSES:
        return TransitionResult(allowed=True, is_noop=True)

    required = JOB_TRANSITIONS.get((current, target))
    if required is None:
        return TransitionResult(
            allowed=False,
            error_message=f"Job cannot move from '{current.value}' to '{target.value}'",
        )
    if required is not actor:
        return TransitionResult(
            allowed=False,
            error_message=(
                f"Job move '{current.value}' -> '{target.value}' requires "
                f"{required.value}, not {actor.value}"
            ),
        )
    return TransitionResult(allowed=True)


def legal_actions(status: JobStatus | str, actor: Actor | None = None) -> list[JobAction]:
    """Actions a client may offer for a job at ``status``.

    With no actor, every action legal for the status is returned; with an
    actor, only the ones that actor may take.
    """
    if not isinstance(status, JobStatus):
        status = parse_job_status(status)
    actions = JOB_ACTIONS.get(status, {})
    return [a for a, who in actions.items() if actor is None or who is actor]


def check_action_or_raise(status: JobStatus, action: JobAction, actor: Actor | None) -> None:
    allowed = legal_actions(status, actor)
    if action not in allowed:
        raise create_transition_error(status.value, action.value, [a.value for a in allowed])


def check_create_or_raise(actor: Actor | None) -> None:
    if actor is not JOB_CREATOR:
        who = actor.value if actor else "anonymous"
        raise TransitionError(f"Only an organization owner may post a job, not {who}")


def accepts_applications(status: JobStatus) -> bool:
    return status is JobStatus.OPEN


def validate_application_transition(
    current: ApplicationStatus | None, target: ApplicationStatus, actor: Actor
) -> TransitionResult:
    """Check an application status change.

    Candidates may only create an application (``None -> applied``). Every
    later change is authored by the backend, moves forward along the round
    progression, and stops at a terminal status.
    """
    if current is None:
        if target is ApplicationStatus.APPLIED and actor is Actor.CANDIDATE:
            return TransitionResult(allowed=True)
        return TransitionResult(
            allowed=False,
            error_message="Applications are created only by candidates, as 'applied'",
        )
    if ApplicationStatus.UNKNOWN in (current, target):
        return TransitionResult(
            allowed=False,
            error_message=f"Cannot transition application between '{current.value}' and '{target.value}'",
        )
    if current in TERMINAL_APPLICATION_STATUSES:
        return TransitionResult(
            allowed=False,
            error_message=f"Application is final at '{current.value}'",
        )
    if current == target:
        return TransitionResult(allowed=True, is_noop=True)
    if actor is not Actor.SYSTEM:
        return TransitionResult(
            allowed=False,
            error_message=f"Application status '{target.value}' is set by the server only",
        )
    if target is ApplicationStatus.REJECTED:
        return TransitionResult(allowed=True)
    if _APPLICATION_ORDER.index(target) > _APPLICATION_ORDER.index(current):
        return TransitionResult(allowed=True)
    return TransitionResult(
        allowed=False,
        error_message=f"Application cannot move back from '{current.value}' to '{target.value}'",
    )


def is_terminal_application(status: ApplicationStatus) -> bool:
    return status in TERMINAL_APPLICATION_STATUSES


@dataclass
class ApplyOutcome:
    """What a view shows after an apply attempt."""
    applied: bool
    message: str
    error: bool = False
    already_registered: bool = False


def resolve_apply_outcome(ok: bool, detail: str | None, message: str | None = None) -> ApplyOutcome:
    """Collapse a server reply to an apply request into an outcome.

    "already registered" is a success-equivalent: the candidate ends up
    applied and no error is shown.
    """
    if ok:
        return ApplyOutcome(applied=True, message=message or "Job applied")
    text = detail or "Failed to apply"
    if ALREADY_REGISTERED_MARKER in text.lower():
        return ApplyOutcome(
            applied=True,
            message="Already registered for this job.",
            already_registered=True,
        )
    return ApplyOutcome(applied=False, message=text, error=True)
