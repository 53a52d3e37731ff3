"""
Dev Monitor Router - Development-only endpoints for login and audit trail inspection.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Request, Depends, HTTPException
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..models import AUDIT_ACTIONS, LOGIN_STATUSES
from ..repositories import AuditLogRepository, LoginLogRepository

router = APIRouter(prefix="/dev", tags=["dev-monitor"])
logger = logging.getLogger(__name__)

MAX_LIMIT = 1000


def is_dev_mode() -> bool:
    """Check if DEV_MODE is enabled."""
    return settings.DEV_MODE


def is_local_request(request: Request) -> bool:
    """Check if request originates from localhost or internal IP."""
    if not request.client:
        # No client info, likely an internal request
        return True

    client_ip = request.client.host

    if client_ip in ("127.0.0.1", "::1", "localhost"):
        return True

    # Private ranges, including Docker bridge networks
    if client_ip.startswith(("10.", "172.", "192.168.")):
        return True

    return False


def _guard(request: Request, path: str, limit: int) -> None:
    client = request.client.host if request.client else 'unknown'

    if not is_dev_mode():
        logger.warning("Attempt to access %s with DEV_MODE disabled from IP %s", path, client)
        raise HTTPException(status_code=404, detail="Not found")

    if not is_local_request(request):
        logger.warning("Dev monitor %s refused for non-local IP %s", path, client)
        raise HTTPException(status_code=403, detail="Forbidden")

    if limit > MAX_LIMIT:
        raise HTTPException(status_code=400, detail=f"Limit cannot exceed {MAX_LIMIT} entries")


@router.get("/login-logs")
def get_login_logs(
    request: Request,
    limit: int = 50,
    status: Optional[str] = None,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Get recent login attempts (development only).

    Args:
        limit: Maximum number of entries to return (default 50, max 1000)
        status: Filter by SUCCESS, FAILED or BLOCKED (optional)
        user_id: Filter by user ID (optional)

    Raises:
        404: If DEV_MODE is not enabled
        403: If request is not from localhost/internal IP
        400: If limit exceeds 1000 or status is unknown
    """
    _guard(request, "/dev/login-logs", limit)

    if status and status not in LOGIN_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown status '{status}'")

    login_logs = LoginLogRepository(db)
    if user_id:
        entries = login_logs.get_by_user_id(user_id, limit=limit)
        if status:
            entries = [entry for entry in entries if entry.status == status]
    else:
        entries = login_logs.get_recent(limit=limit, status=status)

    logger.info(
        "Dev login logs accessed: limit=%s, status=%s, user_id=%s, results=%s",
        limit, status, user_id, len(entries)
    )
    return [entry.to_dict() for entry in entries]


@router.get("/audit-logs")
def get_audit_logs(
    request: Request,
    limit: int = 50,
    user_id: Optional[str] = None,
    performed_by: Optional[str] = None,
    action: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Get audit trail entries (development only). Exactly one of user_id,
    performed_by or action selects the entries.
    """
    _guard(request, "/dev/audit-logs", limit)

    audit_logs = AuditLogRepository(db)
    if user_id:
        entries = audit_logs.get_by_user_id(user_id, limit=limit)
    elif performed_by:
        entries = audit_logs.get_by_performer_id(performed_by, limit=limit)
    elif action:
        if action not in AUDIT_ACTIONS:
            raise HTTPException(status_code=400, detail=f"Unknown action '{action}'")
        entries = audit_logs.get_by_action(action, limit=limit)
    else:
        raise HTTPException(status_code=400, detail="One of user_id, performed_by or action is required")

    return [entry.to_dict() for entry in entries]
