"""
Job board operations built on the session client and the lifecycle model.

Every call goes through ``SessionClient.authenticated_fetch``; a ``None``
return from any method means the session was lost and the caller has been
sent to the login surface. Status changes are never applied locally: after a
close the job is re-read from the server.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests

from prism.errors import NotAuthenticatedError, ResumeRequiredError
from prism.lifecycle import (
    ApplyOutcome,
    JobAction,
    JobStatus,
    check_action_or_raise,
    check_create_or_raise,
    resolve_apply_outcome,
)
from prism.log import get_logger
from prism.models import Application, Identity, JobPosting
from prism.session import OnUnauthorized, SessionClient

log = get_logger(__name__)

ORG_LISTING_STATUSES: tuple[JobStatus, ...] = (JobStatus.OPEN, JobStatus.ONGOING, JobStatus.CLOSED)


@dataclass
class JobDetail:
    job: JobPosting
    user_has_applied: bool = False


@dataclass
class JobDraft:
    """Fields of a new posting, sent as multipart form data."""
    role: str
    location: str
    application_close_date: str
    number_of_openings: int = 1
    job_package_lpa: float = 0
    job_type: str = "full_time"
    notes: str = ""

    def form(self) -> dict[str, str]:
        return {
            "role": self.role,
            "location": self.location,
            "number_of_openings": str(max(1, self.number_of_openings)),
            "application_close_date": self.application_close_date,
            "job_package_lpa": str(self.job_package_lpa),
            "job_type": self.job_type,
            "notes": self.notes,
        }


@dataclass
class PostOutcome:
    created: bool
    message: str
    listings: dict[JobStatus, list[JobPosting]] | None = None


@dataclass
class CloseOutcome:
    closed: bool
    message: str
    job: JobPosting | None = None


def _body(r: requests.Response) -> Any:
    try:
        return r.json()
    except ValueError:
        return {}


def _detail(r: requests.Response) -> str:
    data = _body(r)
    detail = data.get("detail") if isinstance(data, dict) else None
    return detail if isinstance(detail, str) else ""


def _job_list(data: Any) -> list[dict]:
    if isinstance(data, dict):
        data = data.get("jobs", [])
    return [j for j in data if isinstance(j, dict)] if isinstance(data, list) else []


class JobBoard:
    def __init__(self, client: SessionClient, strict: bool = False) -> None:
        self.client = client
        self.endpoints = client.endpoints
        self.strict = strict

    def _fetch(
        self, method: str, url: str, on_unauthorized: OnUnauthorized | None, **kwargs: Any
    ) -> requests.Response | None:
        return self.client.authenticated_fetch(method, url, on_unauthorized=on_unauthorized, **kwargs)

    def _identity(self) -> Identity:
        identity = self.client.current_identity()
        if identity is None:
            raise NotAuthenticatedError("No cached identity; log in first")
        return identity

    # -- candidate side --------------------------------------------------------

    def list_jobs(self, on_unauthorized: OnUnauthorized | None = None) -> list[JobPosting] | None:
        r = self._fetch("GET", self.endpoints.jobs, on_unauthorized)
        if r is None:
            return None
        r.raise_for_status()
        return [JobPosting.from_dict(j, strict=self.strict) for j in _job_list(_body(r))]

    def list_applied(self, on_unauthorized: OnUnauthorized | None = None) -> list[JobPosting] | None:
        r = self._fetch("GET", self.endpoints.jobs_applied, on_unauthorized)
        if r is None:
            return None
        r.raise_for_status()
        return [JobPosting.from_dict(j, strict=self.strict) for j in _job_list(_body(r))]

    def get_job(self, job_id: str, on_unauthorized: OnUnauthorized | None = None) -> JobDetail | None:
        r = self._fetch("GET", self.endpoints.job(job_id), on_unauthorized)
        if r is None:
            return None
        r.raise_for_status()
        data = _body(r)
        job = data.get("job") if isinstance(data, dict) else None
        if not isinstance(job, dict):
            raise LookupError(f"Job not found: {job_id}")
        return JobDetail(
            job=JobPosting.from_dict(job, strict=self.strict),
            user_has_applied=data.get("user_has_applied") is True,
        )

    def fetch_resume_url(self, on_unauthorized: OnUnauthorized | None = None) -> str | None:
        """Resume URL on the candidate's profile; "" when none is on file."""
        r = self._fetch("GET", self.endpoints.user_profile, on_unauthorized)
        if r is None:
            return None
        if not r.ok:
            log.warning("Profile lookup returned HTTP %d", r.status_code)
            return ""
        data = _body(r)
        profile = data.get("profile") if isinstance(data, dict) else None
        if not isinstance(profile, dict):
            return ""
        return profile.get("resumeUrl") or profile.get("resume_url") or ""

    def apply(
        self,
        job: JobPosting,
        additional_details: str = "",
        on_unauthorized: OnUnauthorized | None = None,
    ) -> ApplyOutcome | None:
        """Apply the cached candidate to ``job``.

        The job must be open and a resume must be on file; both are checked
        before the apply request is sent. A server reply of "already
        registered" resolves to an applied outcome with no error.
        """
        identity = self._identity()
        check_action_or_raise(job.status, JobAction.APPLY, identity.actor)

        resume_url = self.fetch_resume_url(on_unauthorized)
        if resume_url is None:
            return None
        if not resume_url:
            raise ResumeRequiredError("Please upload your resume in your profile before applying")

        r = self._fetch(
            "PUT",
            self.endpoints.apply(job.job_id),
            on_unauthorized,
            json={
                "name": identity.name or "",
                "email": identity.email,
                "resume_url": resume_url,
                "additional_details": additional_details,
            },
        )
        if r is None:
            return None
        if r.ok:
            data = _body(r)
            message = data.get("message") if isinstance(data, dict) else None
            outcome = resolve_apply_outcome(True, None, message)
        else:
            outcome = resolve_apply_outcome(False, _detail(r))
        log.info("Apply to %s: applied=%s (%s)", job.job_id, outcome.applied, outcome.message)
        return outcome

    # -- organization side -----------------------------------------------------

    def organization_jobs(
        self, on_unauthorized: OnUnauthorized | None = None
    ) -> dict[JobStatus, list[JobPosting]] | None:
        """The organization's postings, grouped by the listing they came from."""
        grouped: dict[JobStatus, list[JobPosting]] = {}
        for status in ORG_LISTING_STATUSES:
            r = self._fetch("GET", self.endpoints.organization_jobs(status), on_unauthorized)
            if r is None:
                return None
            if not r.ok:
                log.warning("Listing %s jobs returned HTTP %d", status.value, r.status_code)
                grouped[status] = []
                continue
            grouped[status] = [
                JobPosting.from_dict(j, default_status=status, strict=self.strict)
                for j in _job_list(_body(r))
            ]
        return grouped

    def create_job(
        self,
        draft: JobDraft,
        jd_file: Any = None,
        on_unauthorized: OnUnauthorized | None = None,
    ) -> PostOutcome | None:
        """Post a new job as the organization owner, then re-read the listings.

        ``jd_file`` is handed to ``requests`` untouched as the ``jd_file``
        multipart part (a file object or a ``(name, content, type)`` tuple).
        """
        identity = self._identity()
        check_create_or_raise(identity.actor)

        files = {"jd_file": jd_file} if jd_file is not None else None
        r = self._fetch(
            "POST",
            self.endpoints.organization_jobpost,
            on_unauthorized,
            data=draft.form(),
            files=files,
        )
        if r is None:
            return None
        if not r.ok:
            return PostOutcome(created=False, message=_detail(r) or "Failed to create job posting")

        log.info("Posted job %r", draft.role)
        grouped = self.organization_jobs(on_unauthorized)
        if grouped is None:
            return None
        return PostOutcome(created=True, message="Job posting created successfully!", listings=grouped)

    def close_job(
        self, job: JobPosting, on_unauthorized: OnUnauthorized | None = None
    ) -> CloseOutcome | None:
        """Close a posting as its organization owner, then re-read it from the server."""
        identity = self._identity()
        check_action_or_raise(job.status, JobAction.CLOSE, identity.actor)

        r = self._fetch("PUT", self.endpoints.close(job.job_id), on_unauthorized)
        if r is None:
            return None
        if not r.ok:
            return CloseOutcome(closed=False, message=_detail(r) or "Failed to close job posting")

        log.info("Closed job %s", job.job_id)
        grouped = self.organization_jobs(on_unauthorized)
        if grouped is None:
            return None
        refreshed = next(
            (j for jobs in grouped.values() for j in jobs if j.job_id == job.job_id),
            None,
        )
        return CloseOutcome(closed=True, message="Job posting closed successfully!", job=refreshed)

    def applicants(
        self, job_id: str, on_unauthorized: OnUnauthorized | None = None
    ) -> list[Application] | None:
        r = self._fetch("GET", self.endpoints.applicants(job_id), on_unauthorized)
        if r is None:
            return None
        r.raise_for_status()
        data = _body(r)
        if isinstance(data, dict):
            data = data.get("applicants") or data.get("applied_candidates") or []
        if not isinstance(data, list):
            return []
        return [Application.from_dict(a, strict=self.strict) for a in data if isinstance(a, dict)]
