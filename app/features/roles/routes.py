"""
Role feature routes.

Roles are saved with normalized policies: whatever permission list the
client sends is decoded and re-encoded before it is stored.
"""
from typing import Annotated, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.limiter import limiter, role_write_limit
from app.features.permissions.registry import ModuleRegistry, get_registry
from app.features.permissions.schemas import MatrixResponse
from app.features.roles.dependencies import create_audit_log, get_role_or_404
from app.features.roles.models import AuditLog, Role
from app.features.roles.schemas import (
    AuditLogListResponse,
    AuditLogResponse,
    RoleCreate,
    RoleReplace,
    RoleResponse,
)
from app.features.roles.session import RoleEditSession
from app.utils import get_logger


log = get_logger(__name__)

router = APIRouter(tags=["roles"])


def _validation_failed(errors: Dict[str, str]) -> JSONResponse:
    log.info("Role validation error %s", errors)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=errors)


@router.get("/", response_model=List[RoleResponse])
async def list_roles(
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = 0,
    limit: int = 100,
    is_system_role: Optional[bool] = None
):
    """List roles, optionally only system (or only custom) roles."""
    stmt = select(Role)
    if is_system_role is not None:
        stmt = stmt.where(Role.is_system_role == is_system_role)

    result = await db.execute(stmt.order_by(Role.role_key).offset(skip).limit(limit))
    return result.scalars().all()


@router.post("/", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(role_write_limit)
async def create_role(
    request: Request,
    role_data: RoleCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    registry: Annotated[ModuleRegistry, Depends(get_registry)]
):
    """Create a role. Its permissions are stored in minimal form."""
    session = RoleEditSession.from_permissions(
        role_data.permissions,
        role_key=role_data.role_key,
        name=role_data.name.strip(),
        description=role_data.description,
        is_system_role=role_data.is_system_role,
        registry=registry,
    )
    errors = session.validate()
    if errors:
        return _validation_failed(errors)

    result = await db.execute(select(Role).where(Role.role_key == session.role_key))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Role with this key already exists"
        )

    role = Role(
        role_key=session.role_key,
        name=session.name,
        description=session.description,
        permissions=session.policy,
        is_system_role=session.is_system_role,
    )
    db.add(role)
    await create_audit_log(
        db,
        action="create",
        resource_type="role",
        resource_id=role.role_key,
        details={"name": role.name, "permissions": role.permissions},
        request=request,
    )

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Role with this key already exists"
        )
    await db.refresh(role)

    log.info("Created role %s with %d permissions", role.role_key, len(role.permissions))
    return role


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = 0,
    limit: int = 50,
    action: Optional[str] = None,
    resource_id: Optional[str] = None
):
    """List role audit entries, newest first."""
    stmt = select(AuditLog).where(AuditLog.resource_type == "role")

    if action:
        stmt = stmt.where(AuditLog.action == action)
    if resource_id:
        stmt = stmt.where(AuditLog.resource_id == resource_id)

    # Get total count
    count_stmt = select(func.count()).select_from(stmt.subquery())
    total_result = await db.execute(count_stmt)
    total = total_result.scalar() or 0

    # Get paginated results
    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit)
    result = await db.execute(stmt)
    logs = result.scalars().all()

    pages = (total + limit - 1) // limit if limit > 0 else 0
    page = (skip // limit) + 1 if limit > 0 else 1

    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(entry) for entry in logs],
        total=total,
        page=page,
        page_size=limit,
        pages=pages
    )


@router.get("/{role_key}", response_model=RoleResponse)
async def get_role(role: Annotated[Role, Depends(get_role_or_404)]):
    """Get a role by key."""
    return role


@router.get("/{role_key}/matrix", response_model=MatrixResponse)
async def get_role_matrix(
    role: Annotated[Role, Depends(get_role_or_404)],
    registry: Annotated[ModuleRegistry, Depends(get_registry)]
):
    """Get the capability matrix of a stored role."""
    session = RoleEditSession.from_role(role, registry)
    return MatrixResponse.from_matrix(session.matrix, registry)


@router.put("/{role_key}", response_model=RoleResponse)
@limiter.limit(role_write_limit)
async def replace_role(
    request: Request,
    role_data: RoleReplace,
    role: Annotated[Role, Depends(get_role_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
    registry: Annotated[ModuleRegistry, Depends(get_registry)]
):
    """Replace a role's name, description, flags and permissions. The key never changes."""
    session = RoleEditSession.from_permissions(
        role_data.permissions,
        role_key=role.role_key,
        name=role_data.name.strip(),
        description=role_data.description,
        is_system_role=role_data.is_system_role,
        registry=registry,
    )
    errors = session.validate()
    if errors:
        return _validation_failed(errors)

    previous = list(role.permissions or [])
    role.name = session.name
    role.description = session.description
    role.is_system_role = session.is_system_role
    role.permissions = session.policy

    await create_audit_log(
        db,
        action="update",
        resource_type="role",
        resource_id=role.role_key,
        details={
            "name": role.name,
            "granted": sorted(set(role.permissions) - set(previous)),
            "revoked": sorted(set(previous) - set(role.permissions)),
        },
        request=request,
    )
    await db.commit()
    await db.refresh(role)

    log.info("Replaced role %s", role.role_key)
    return role


@router.delete("/{role_key}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(role_write_limit)
async def delete_role(
    request: Request,
    role: Annotated[Role, Depends(get_role_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Delete a role."""
    role_key = role.role_key

    await db.delete(role)
    await create_audit_log(
        db,
        action="delete",
        resource_type="role",
        resource_id=role_key,
        details={"name": role.name},
        request=request,
    )
    await db.commit()

    log.info("Deleted role %s", role_key)
    return None
