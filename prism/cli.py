"""Command line front end for the Prism client core."""
from __future__ import annotations

import argparse
import getpass
import sys

import requests

from prism.client import build_client, check_health
from prism.errors import PrismError
from prism.jobs import JobBoard, JobDraft
from prism.lifecycle import JobStatus, legal_actions
from prism.log import get_logger
from prism.models import JobPosting
from prism.session import SessionClient

log = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_LOGGED_OUT = 2


class _LoggedOut(Exception):
    pass


def _to_login() -> None:
    print()
    print("  Your session has ended. Log in again:")
    print("    python run_client.py login <email>")
    print()
    raise _LoggedOut()


def _job_line(job: JobPosting, client: SessionClient) -> str:
    identity = client.current_identity()
    actor = identity.actor if identity else None
    actions = ", ".join(a.value for a in legal_actions(job.status, actor)) or "-"
    where = f" @ {job.company_name}" if job.company_name else ""
    return f"{job.job_id:<26} {job.status.value:<8} {job.role}{where}  [actions: {actions}]"


def _cmd_login(args, client: SessionClient, board: JobBoard) -> int:
    password = args.password or getpass.getpass("Password: ")
    user_type = "organization" if args.org else "user"
    session = client.login(args.email, password, user_type)
    print(f"Logged in as {session.identity.email if session.identity else args.email}")
    return EXIT_OK


def _cmd_signup(args, client: SessionClient, board: JobBoard) -> int:
    password = args.password or getpass.getpass("Password: ")
    user_type = "organization" if args.org else "user"
    print(client.signup(args.email, password, user_type, args.name))
    print(f"Then run: python run_client.py verify-otp {args.email} <otp>" + (" --org" if args.org else ""))
    return EXIT_OK


def _cmd_verify_otp(args, client: SessionClient, board: JobBoard) -> int:
    user_type = "organization" if args.org else "user"
    session = client.verify_otp(args.email, args.otp, user_type)
    print(f"Verified {session.identity.email if session.identity else args.email}")
    return EXIT_OK


def _cmd_logout(args, client: SessionClient, board: JobBoard) -> int:
    client.logout()
    print("Logged out")
    return EXIT_OK


def _cmd_whoami(args, client: SessionClient, board: JobBoard) -> int:
    identity = client.current_identity()
    if identity is None or not client.store.read().is_authenticated:
        print("Not logged in")
        return EXIT_ERROR
    role = f" ({identity.role})" if identity.role else ""
    print(f"{identity.email}  {identity.user_type}{role}")
    return EXIT_OK


def _cmd_jobs(args, client: SessionClient, board: JobBoard) -> int:
    if not client.require_user_type("user", _to_login):
        return EXIT_LOGGED_OUT
    jobs = board.list_applied(_to_login) if args.applied else board.list_jobs(_to_login)
    for job in jobs or []:
        print(_job_line(job, client))
    return EXIT_OK


def _cmd_job(args, client: SessionClient, board: JobBoard) -> int:
    if not client.require_user_type("user", _to_login):
        return EXIT_LOGGED_OUT
    detail = board.get_job(args.job_id, _to_login)
    if detail is None:
        return EXIT_LOGGED_OUT
    print(_job_line(detail.job, client))
    if detail.job.application_close_date:
        print(f"  closes: {detail.job.application_close_date}")
    if detail.user_has_applied:
        print("  you have applied to this job")
    return EXIT_OK


def _cmd_apply(args, client: SessionClient, board: JobBoard) -> int:
    if not client.require_user_type("user", _to_login):
        return EXIT_LOGGED_OUT
    detail = board.get_job(args.job_id, _to_login)
    if detail is None:
        return EXIT_LOGGED_OUT
    if detail.user_has_applied:
        print("Already registered for this job.")
        return EXIT_OK
    outcome = board.apply(detail.job, args.details, _to_login)
    if outcome is None:
        return EXIT_LOGGED_OUT
    print(outcome.message)
    return EXIT_ERROR if outcome.error else EXIT_OK


def _find_org_job(board: JobBoard, job_id: str) -> JobPosting | None:
    grouped = board.organization_jobs(_to_login)
    for jobs in (grouped or {}).values():
        for job in jobs:
            if job.job_id == job_id:
                return job
    return None


def _cmd_post_job(args, client: SessionClient, board: JobBoard) -> int:
    if not client.require_user_type("organization", _to_login):
        return EXIT_LOGGED_OUT
    draft = JobDraft(
        role=args.role,
        location=args.location,
        application_close_date=args.close_date,
        number_of_openings=args.openings,
        job_package_lpa=args.lpa,
        job_type=args.job_type,
        notes=args.notes,
    )
    if args.jd:
        with open(args.jd, "rb") as jd:
            outcome = board.create_job(draft, jd, _to_login)
    else:
        outcome = board.create_job(draft, None, _to_login)
    if outcome is None:
        return EXIT_LOGGED_OUT
    print(outcome.message)
    return EXIT_OK if outcome.created else EXIT_ERROR


def _cmd_close(args, client: SessionClient, board: JobBoard) -> int:
    if not client.require_user_type("organization", _to_login):
        return EXIT_LOGGED_OUT
    job = _find_org_job(board, args.job_id)
    if job is None:
        print(f"Job not found: {args.job_id}")
        return EXIT_ERROR
    outcome = board.close_job(job, _to_login)
    if outcome is None:
        return EXIT_LOGGED_OUT
    print(outcome.message)
    return EXIT_OK if outcome.closed else EXIT_ERROR


def _cmd_org_jobs(args, client: SessionClient, board: JobBoard) -> int:
    if not client.require_user_type("organization", _to_login):
        return EXIT_LOGGED_OUT
    grouped = board.organization_jobs(_to_login)
    if grouped is None:
        return EXIT_LOGGED_OUT
    for status in (JobStatus.OPEN, JobStatus.ONGOING, JobStatus.CLOSED):
        print(f"{status.value} ({len(grouped.get(status, []))})")
        for job in grouped.get(status, []):
            print("  " + _job_line(job, client))
    return EXIT_OK


def _cmd_applicants(args, client: SessionClient, board: JobBoard) -> int:
    if not client.require_user_type("organization", _to_login):
        return EXIT_LOGGED_OUT
    applicants = board.applicants(args.job_id, _to_login)
    if applicants is None:
        return EXIT_LOGGED_OUT
    for a in applicants:
        if args.status and a.status.value != args.status:
            continue
        print(f"{a.email:<32} {a.status.value:<20} rounds done: {len(a.previous_rounds)}")
    return EXIT_OK


def _cmd_health(args, client: SessionClient, board: JobBoard) -> int:
    data = check_health(client.endpoints.health, http=client.http)
    print(data.get("status", data))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="prism", description="Prism recruitment client")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="log in and store the session")
    p.add_argument("email")
    p.add_argument("--password")
    p.add_argument("--org", action="store_true", help="log in as an organization")
    p.set_defaults(func=_cmd_login)

    p = sub.add_parser("signup", help="create an account; an OTP is emailed")
    p.add_argument("email")
    p.add_argument("--password")
    p.add_argument("--name")
    p.add_argument("--org", action="store_true", help="sign up as an organization")
    p.set_defaults(func=_cmd_signup)

    p = sub.add_parser("verify-otp", help="finish signup with the emailed OTP")
    p.add_argument("email")
    p.add_argument("otp")
    p.add_argument("--org", action="store_true")
    p.set_defaults(func=_cmd_verify_otp)

    sub.add_parser("logout", help="end the session").set_defaults(func=_cmd_logout)
    sub.add_parser("whoami", help="show the cached identity").set_defaults(func=_cmd_whoami)

    p = sub.add_parser("jobs", help="list jobs on the board")
    p.add_argument("--applied", action="store_true", help="only jobs you applied to")
    p.set_defaults(func=_cmd_jobs)

    p = sub.add_parser("job", help="show one job")
    p.add_argument("job_id")
    p.set_defaults(func=_cmd_job)

    p = sub.add_parser("apply", help="apply to an open job")
    p.add_argument("job_id")
    p.add_argument("--details", default="", help="additional details for the recruiter")
    p.set_defaults(func=_cmd_apply)

    p = sub.add_parser("post-job", help="post a new job as the organization owner")
    p.add_argument("role")
    p.add_argument("--location", required=True)
    p.add_argument("--close-date", required=True, help="application close date, YYYY-MM-DD")
    p.add_argument("--openings", type=int, default=1)
    p.add_argument("--lpa", type=float, default=0, help="package in lakhs per annum")
    p.add_argument("--job-type", default="full_time", choices=["full_time", "internship", "unpaid"])
    p.add_argument("--notes", default="")
    p.add_argument("--jd", help="job description file")
    p.set_defaults(func=_cmd_post_job)

    p = sub.add_parser("close", help="close an ongoing job posting")
    p.add_argument("job_id")
    p.set_defaults(func=_cmd_close)

    sub.add_parser("org-jobs", help="list your organization's postings").set_defaults(func=_cmd_org_jobs)

    p = sub.add_parser("applicants", help="list applicants for a posting")
    p.add_argument("job_id")
    p.add_argument("--status", help="filter by application status, e.g. offer_accepted")
    p.set_defaults(func=_cmd_applicants)

    sub.add_parser("health", help="probe the backend").set_defaults(func=_cmd_health)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    client, board = build_client()
    try:
        return args.func(args, client, board)
    except _LoggedOut:
        return EXIT_LOGGED_OUT
    except (PrismError, LookupError) as exc:
        print(getattr(exc, "message", None) or exc)
        return EXIT_ERROR
    except requests.HTTPError as exc:
        detail = ""
        if exc.response is not None:
            try:
                detail = exc.response.json().get("detail", "")
            except (ValueError, AttributeError):
                detail = ""
        log.error("Request failed: %s", detail or exc)
        return EXIT_ERROR
    except requests.RequestException as exc:
        log.error("Could not reach the backend: %s", exc)
        return EXIT_ERROR
    except OSError as exc:
        print(f"Could not read {exc.filename}: {exc.strerror}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
