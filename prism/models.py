"""Data models for sessions, job postings and applications."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from prism.lifecycle import (
    Actor,
    ApplicationStatus,
    JobStatus,
    parse_application_status,
    parse_job_status,
)


@dataclass(frozen=True)
class Identity:
    """Cached principal info. Used for client-side gating only; the backend is authoritative."""
    email: str
    user_type: str
    role: str | None = None
    is_org_member: bool | None = None
    name: str | None = None

    @property
    def actor(self) -> Actor:
        if self.user_type != "organization":
            return Actor.CANDIDATE
        if self.role == "member":
            return Actor.ORG_MEMBER
        return Actor.ORG_OWNER

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Identity | None:
        if not isinstance(data, dict) or not data.get("email") or not data.get("user_type"):
            return None
        is_member = data.get("is_org_member")
        return cls(
            email=str(data["email"]),
            user_type=str(data["user_type"]),
            role=data.get("role"),
            is_org_member=bool(is_member) if is_member is not None else None,
            name=data.get("name"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"email": self.email, "user_type": self.user_type}
        if self.role is not None:
            out["role"] = self.role
        if self.is_org_member is not None:
            out["is_org_member"] = self.is_org_member
        if self.name is not None:
            out["name"] = self.name
        return out


@dataclass(frozen=True)
class Session:
    access_token: str | None = None
    refresh_token: str | None = None
    identity: Identity | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)


@dataclass
class Round:
    name: str
    status: str | None = None
    scheduled_at: str | None = None
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> Round:
        if not isinstance(data, dict):
            return cls(name=str(data))
        return cls(
            name=str(data.get("round_name") or data.get("name") or ""),
            status=data.get("status"),
            scheduled_at=data.get("scheduled_at") or data.get("interview_time"),
            raw=data,
        )


@dataclass
class Application:
    email: str
    status: ApplicationStatus
    resume_url: str = ""
    name: str = ""
    previous_rounds: list[Round] = field(default_factory=list)
    ongoing_rounds: list[Round] = field(default_factory=list)
    offer_letter_path: str | None = None
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any], strict: bool = False) -> Application:
        return cls(
            email=str(data.get("email", "")),
            status=parse_application_status(data.get("status", "applied"), strict=strict),
            resume_url=data.get("resume_url") or data.get("resumeUrl") or "",
            name=data.get("name") or "",
            previous_rounds=[Round.from_dict(r) for r in data.get("previous_rounds") or []],
            ongoing_rounds=[Round.from_dict(r) for r in data.get("ongoing_rounds") or []],
            offer_letter_path=data.get("offer_letter_path"),
            raw=data,
        )


@dataclass
class JobPosting:
    job_id: str
    status: JobStatus
    application_close_date: str | None = None
    openings: int = 1
    role: str = ""
    company_name: str = ""
    location: str = ""
    job_type: str = ""
    package_lpa: float | None = None
    notes: str = ""
    applied_candidates: list[Application] = field(default_factory=list)
    offer_accepted_count: int | None = None
    created_at: str | None = None
    closed_at: str | None = None
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        default_status: JobStatus | None = None,
        strict: bool = False,
    ) -> JobPosting:
        """Build from a backend job resource.

        Organization listings are split by endpoint and may omit the status
        field; ``default_status`` fills it from the listing it came from.
        """
        raw_status = data.get("job_status") or data.get("status")
        if raw_status is None and default_status is not None:
            status = default_status
        else:
            status = parse_job_status(raw_status, strict=strict)

        company = data.get("company")
        company_name = company.get("name", "") if isinstance(company, dict) else str(company or "")

        try:
            openings = max(1, int(data.get("number_of_openings") or 1))
        except (TypeError, ValueError):
            openings = 1

        return cls(
            job_id=str(data.get("job_id") or data.get("id") or ""),
            status=status,
            application_close_date=data.get("application_close_date"),
            openings=openings,
            role=data.get("role") or "",
            company_name=company_name,
            location=data.get("location") or "",
            job_type=data.get("job_type") or "",
            package_lpa=data.get("job_package_lpa"),
            notes=data.get("notes") or "",
            applied_candidates=[
                Application.from_dict(a, strict=strict)
                for a in data.get("applied_candidates") or []
                if isinstance(a, dict)
            ],
            offer_accepted_count=data.get("offer_accepted_count"),
            created_at=data.get("created_at"),
            closed_at=data.get("closed_at"),
            raw=data,
        )
