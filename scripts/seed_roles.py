"""
Seed script to populate the default system roles.

Run this script after database initialization to create the built-in role
templates. Roles that already exist are left untouched.

Usage:
    python -m scripts.seed_roles
"""
import asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db, init_db
from app.features.permissions.registry import MODULE_REGISTRY, ModuleRegistry
from app.features.roles.models import Role
from app.features.roles.session import RoleEditSession
from app.utils import get_logger


log = get_logger(__name__)


DEFAULT_ROLES = {
    "super_admin": {
        "name": "Super Admin",
        "description": "Full access to every module",
        "permissions": ["*"],
    },
    "org_admin": {
        "name": "Organisation Admin",
        "description": "Manages users, roles and settings of the organisation",
        "permissions": [
            "users:*", "roles:*", "settings:*", "integrations:*", "audit_logs:read",
            "dashboard:read", "reports:*",
        ],
    },
    "sales_manager": {
        "name": "Sales Manager",
        "description": "Owns the pipeline and the sales team's records",
        "permissions": [
            "leads:*", "contacts:*", "accounts:*", "opportunities:*", "quotes:*",
            "tasks:*", "calendar:*", "calls:*", "products:read",
            "dashboard:read", "reports:*", "users:read",
        ],
    },
    "sales_rep": {
        "name": "Sales Representative",
        "description": "Works leads and opportunities",
        "permissions": [
            "leads:read", "leads:create", "leads:update",
            "contacts:read", "contacts:create", "contacts:update",
            "accounts:read", "opportunities:read", "opportunities:create", "opportunities:update",
            "quotes:read", "quotes:create", "tasks:*", "calendar:*", "calls:*",
            "whatsapp:*", "products:read", "dashboard:read",
        ],
    },
    "marketing_manager": {
        "name": "Marketing Manager",
        "description": "Runs campaigns and automation",
        "permissions": [
            "campaigns:*", "workflows:*", "whatsapp:*", "leads:read", "leads:create",
            "contacts:read", "dashboard:read", "reports:read",
        ],
    },
}


async def seed_roles(db: AsyncSession, registry: ModuleRegistry = MODULE_REGISTRY) -> list[Role]:
    """
    Create the default roles that do not exist yet.

    Args:
        db: Database session
        registry: Module registry the policies are normalized against

    Returns:
        The roles created by this run
    """
    log.info("Creating default roles...")
    created = []

    for role_key, role_config in DEFAULT_ROLES.items():
        # Check if role already exists
        stmt = select(Role).where(Role.role_key == role_key)
        result = await db.execute(stmt)
        existing = result.scalars().first()

        if existing:
            log.debug("Role '%s' already exists, skipping", role_key)
            continue

        session = RoleEditSession.from_permissions(
            role_config["permissions"],
            role_key=role_key,
            name=role_config["name"],
            description=role_config["description"],
            is_system_role=True,
            registry=registry,
        )
        errors = session.validate()
        if errors:
            log.warning("Skipping default role '%s': %s", role_key, errors)
            continue

        role = Role(
            role_key=session.role_key,
            name=session.name,
            description=session.description,
            permissions=session.policy,
            is_system_role=True,
        )
        db.add(role)
        created.append(role)
        log.info("Created role '%s' with %d permissions", role_key, len(role.permissions))

    await db.commit()
    log.info("Default roles created successfully")
    return created


async def main():
    """Main function to seed roles."""
    log.info("Starting role seeding...")

    # Initialize database tables first
    log.info("Initializing database tables...")
    await init_db()

    # Get database session
    async for db in get_db():
        try:
            created = await seed_roles(db)
            log.info("Role seeding completed: %d created", len(created))
            for role_key, role_config in DEFAULT_ROLES.items():
                log.info("  - %s: %s", role_key, role_config["description"])
        except Exception:
            log.exception("Error seeding roles")
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
