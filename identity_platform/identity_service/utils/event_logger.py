"""
Event logger utility for authentication events.
"""
from fastapi import Request
from typing import Optional
import sys
import logging
import os

from ..models import LOGIN_STATUSES, LoginLog, utcnow
from ..repositories import LoginLogRepository

logger = logging.getLogger(__name__)


def setup_logging(log_dir: str, level: str = "INFO") -> None:
    """
    Configure stdout logging plus an identity_events.log file in log_dir.

    The file handler is skipped when the directory cannot be created.
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    try:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(log_dir, "identity_events.log")))
    except OSError as e:
        print(f"WARNING: Could not set up file logging: {e}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s:%(message)s",
        handlers=handlers
    )


def client_ip(request: Request) -> Optional[str]:
    """Client address, falling back to the first X-Forwarded-For hop."""
    ip_address = None
    if request.client:
        ip_address = request.client.host

    if not ip_address and request.headers.get("x-forwarded-for"):
        # X-Forwarded-For can contain multiple IPs, take the first one
        ip_address = request.headers.get("x-forwarded-for").split(",")[0].strip()

    return ip_address


def record_login_attempt(
    login_logs: LoginLogRepository,
    status: str,
    user_id: Optional[str] = None,
    email: Optional[str] = None,
    failure_reason: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    log: logging.Logger = logger,
) -> Optional[LoginLog]:
    """
    Append a login attempt to the login log.

    Args:
        login_logs: Login log repository bound to the request session
        status: One of: SUCCESS, FAILED, BLOCKED
        user_id: Id of the matched user, None when the email was unknown
        email: Attempted email, only used for the log line
        failure_reason: Why the attempt failed or was blocked
        ip_address: Client address
        user_agent: Client User-Agent header
        log: Logger receiving the AUTH line and write failures

    Returns:
        The stored LoginLog, or None if it could not be written

    Raises:
        ValueError: If status is invalid
    """
    if status not in LOGIN_STATUSES:
        raise ValueError(
            f"Invalid login status '{status}'. Must be one of: {', '.join(LOGIN_STATUSES)}"
        )

    try:
        entry = login_logs.create(LoginLog(
            user_id=user_id,
            login_at=utcnow(),
            ip_address=ip_address,
            user_agent=user_agent,
            status=status,
            failure_reason=failure_reason,
        ))
    except Exception as e:
        # Logging failure should not break the auth flow
        log.warning(
            "Failed to record login attempt - user_id=%s, status=%s, error=%s",
            user_id, status, e
        )
        try:
            login_logs.db.rollback()
        except Exception:
            log.debug("Rollback after failed login log write also failed", exc_info=True)
        return None

    log.info(
        "AUTH %s user_id=%s email=%s ip=%s reason=%s",
        status, user_id, email, ip_address, failure_reason
    )
    return entry
