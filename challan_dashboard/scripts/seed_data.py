"""
Script to seed roles, permissions, the initial admin and sample settlement rules
Run with: python -m challan_dashboard.scripts.seed_data
"""
import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from challan_dashboard.config import get_settings
from challan_dashboard.core.permissions import DEFAULT_ROLES, PERMISSION_CATALOGUE
from challan_dashboard.core.security import get_password_hash
from challan_dashboard.models.settlement_config import SettlementConfig
from challan_dashboard.models.user import ADMIN_ROLE, Permission, Role, User, UserStatus

settings = get_settings()
logger = logging.getLogger(__name__)

SAMPLE_SETTLEMENT_RULES = [
    dict(rule_name="DL_MPARIVAHAN_60", source_type="mparivahan", region="DL", settlement_percentage=60),
    dict(rule_name="DL_VCOURT_50", source_type="vcourt", region="DL", settlement_percentage=50),
    dict(
        rule_name="ALL_DELHI_POLICE_OLD_40",
        source_type="delhi_police",
        region="ALL",
        challan_year_cutoff=2020,
        year_cutoff_logic="≤",
        settlement_percentage=40,
    ),
]


async def seed_defaults(db: AsyncSession) -> None:
    """Create the permission catalogue, default roles and the initial admin. Idempotent."""
    result = await db.execute(select(Permission))
    permissions = {p.name: p for p in result.scalars().all()}
    for name, resource, action, description in PERMISSION_CATALOGUE:
        if name not in permissions:
            permission = Permission(name=name, resource=resource, action=action, description=description)
            db.add(permission)
            permissions[name] = permission
            logger.info(f"Created permission {name}")
    await db.flush()

    result = await db.execute(select(Role))
    roles = {r.name: r for r in result.scalars().all()}
    for name, (description, permission_names) in DEFAULT_ROLES.items():
        if name in roles:
            continue
        role = Role(
            name=name,
            description=description,
            permissions=[permissions[p] for p in permission_names],
        )
        db.add(role)
        roles[name] = role
        logger.info(f"Created role {name}")
    await db.flush()

    result = await db.execute(select(User).where(User.email == settings.INITIAL_ADMIN_EMAIL))
    if result.scalar_one_or_none() is None:
        db.add(
            User(
                email=settings.INITIAL_ADMIN_EMAIL,
                name=settings.INITIAL_ADMIN_NAME,
                password_hash=get_password_hash(settings.INITIAL_ADMIN_PASSWORD),
                role_id=roles[ADMIN_ROLE].id,
                status=UserStatus.ACTIVE,
            )
        )
        logger.info(f"Created initial admin {settings.INITIAL_ADMIN_EMAIL}")

    await db.commit()


async def seed_sample_rules(db: AsyncSession) -> int:
    """Insert the sample settlement rules that are not there yet, returns how many were added"""
    result = await db.execute(select(SettlementConfig.rule_name))
    existing = set(result.scalars().all())
    added = 0
    for rule in SAMPLE_SETTLEMENT_RULES:
        if rule["rule_name"] in existing:
            continue
        db.add(SettlementConfig(**rule))
        added += 1
    await db.commit()
    return added


async def seed_data():
    """Seed default data"""
    from challan_dashboard.database import AsyncSessionLocal, init_db

    print("Seeding default data...")
    await init_db()

    async with AsyncSessionLocal() as db:
        await seed_defaults(db)
        added = await seed_sample_rules(db)

    print("\n✅ Default data seeded successfully!")
    print(f"\nAdmin login: {settings.INITIAL_ADMIN_EMAIL} / {settings.INITIAL_ADMIN_PASSWORD}")
    print(f"Sample settlement rules added: {added}")


if __name__ == "__main__":
    asyncio.run(seed_data())
