"""Tests for the default role seed script."""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.permissions.policy import normalize
from app.features.roles.models import Role
from scripts.seed_roles import DEFAULT_ROLES, seed_roles

pytestmark = pytest.mark.asyncio


async def test_seed_creates_default_roles_once(db_session: AsyncSession) -> None:
    created = await seed_roles(db_session)
    assert sorted(role.role_key for role in created) == sorted(DEFAULT_ROLES)

    again = await seed_roles(db_session)
    assert again == []

    result = await db_session.execute(select(Role))
    roles = {role.role_key: role for role in result.scalars().all()}
    assert set(roles) == set(DEFAULT_ROLES)
    assert all(role.is_system_role for role in roles.values())


async def test_seeded_policies_are_normalized(db_session: AsyncSession) -> None:
    await seed_roles(db_session)

    result = await db_session.execute(select(Role))
    for role in result.scalars().all():
        assert role.permissions == normalize(DEFAULT_ROLES[role.role_key]["permissions"])
        assert role.permissions == normalize(role.permissions)

    super_admin = await db_session.scalar(select(Role).where(Role.role_key == "super_admin"))
    assert super_admin.permissions == ["*"]

    sales_rep = await db_session.scalar(select(Role).where(Role.role_key == "sales_rep"))
    assert "leads:read" in sales_rep.permissions
    assert "leads:*" not in sales_rep.permissions
    assert "calls:*" in sales_rep.permissions
