"""
Role lookup dependency and audit logging helper.
"""
from typing import Annotated, Any, Dict, Optional
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.roles.models import AuditLog, Role
from app.utils import get_logger


log = get_logger(__name__)


async def get_role_or_404(
    role_key: str,
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Role:
    """Load a role by its key from the path, or respond 404."""
    result = await db.execute(select(Role).where(Role.role_key == role_key))
    role = result.scalar_one_or_none()

    if role is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Role not found"
        )

    return role


# ============================================================================
# Audit Logging
# ============================================================================

async def create_audit_log(
    db: AsyncSession,
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None
) -> AuditLog:
    """
    Add an audit log entry to the session.

    Args:
        db: Database session (the caller commits)
        action: Action performed ("create", "update", "delete")
        resource_type: Type of resource (e.g. "role")
        resource_id: Identifier of the resource
        details: Additional details
        request: Incoming request, for client IP and user agent

    Returns:
        The pending AuditLog object
    """
    audit_log = AuditLog(
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        ip_address=request.client.host if request and request.client else None,
        user_agent=request.headers.get("user-agent") if request else None
    )

    db.add(audit_log)

    log.info("Audit: action=%s resource=%s:%s", action, resource_type, resource_id)

    return audit_log
