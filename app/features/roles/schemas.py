"""
Pydantic schemas for role documents and audit logs.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.features.permissions.schemas import CamelModel


# ============================================================================
# Role Schemas
# ============================================================================

class RoleBase(CamelModel):
    """Base role schema."""
    name: str = Field("", max_length=100, description="Display name")
    description: Optional[str] = Field(None, max_length=1000, description="Role description")
    permissions: List[str] = Field(default_factory=list, description="Permission strings, e.g. 'leads:*'")
    is_system_role: bool = False


class RoleCreate(RoleBase):
    """Schema for creating a new role."""
    role_key: str = Field("", max_length=50, description="Immutable role identifier")

    @field_validator("role_key")
    @classmethod
    def role_key_format(cls, v: str) -> str:
        """Role keys hold only alphanumerics, underscores and hyphens."""
        v = v.strip()
        if v and not v.replace("_", "").replace("-", "").isalnum():
            raise ValueError("Role key must contain only alphanumeric characters, underscores, and hyphens")
        return v


class RoleReplace(RoleBase):
    """Schema for replacing a role; the role key comes from the path."""
    pass


class RoleResponse(RoleBase):
    """Schema for role response."""
    id: str
    role_key: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ============================================================================
# Audit Log Schemas
# ============================================================================

class AuditLogResponse(CamelModel):
    """Schema for audit log response."""
    id: str
    action: str
    resource_type: str
    resource_id: Optional[str]
    details: Optional[Dict[str, Any]]
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class AuditLogListResponse(CamelModel):
    """Schema for paginated audit log list."""
    items: List[AuditLogResponse]
    total: int
    page: int
    page_size: int
    pages: int
