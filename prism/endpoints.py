"""Backend REST endpoints."""
from __future__ import annotations

from urllib.parse import quote

from prism.lifecycle import JobStatus


class Endpoints:
    def __init__(self, base_url: str) -> None:
        self.base = base_url.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self.base}{path}"

    @property
    def health(self) -> str:
        return self._url("/health")

    @property
    def login(self) -> str:
        return self._url("/api/auth/login")

    @property
    def signup(self) -> str:
        return self._url("/api/auth/signup")

    @property
    def verify_otp(self) -> str:
        return self._url("/api/auth/verify-otp")

    @property
    def logout(self) -> str:
        return self._url("/api/auth/logout")

    @property
    def refresh_token(self) -> str:
        return self._url("/api/auth/refresh-token")

    @property
    def user_profile(self) -> str:
        return self._url("/api/user-profile")

    @property
    def jobs(self) -> str:
        return self._url("/api/jobs")

    @property
    def jobs_applied(self) -> str:
        return self._url("/api/jobs/applied")

    def job(self, job_id: str) -> str:
        return self._url(f"/api/jobs/{quote(job_id, safe='')}")

    @property
    def organization_jobpost(self) -> str:
        return self._url("/api/organization-jobpost")

    def organization_jobs(self, status: JobStatus) -> str:
        """Organization listings are one endpoint per status; open is the bare collection."""
        if status is JobStatus.OPEN:
            return self.organization_jobpost
        return f"{self.organization_jobpost}/{status.value}"

    def apply(self, job_id: str) -> str:
        return f"{self.organization_jobpost}/{quote(job_id, safe='')}/apply"

    def close(self, job_id: str) -> str:
        return f"{self.organization_jobpost}/{quote(job_id, safe='')}/close"

    def applicants(self, job_id: str) -> str:
        return f"{self.organization_jobpost}/{quote(job_id, safe='')}/applicants"
