#!/usr/bin/env python3
"""Seed the database with the stock sectors and the firewall settings row.

Usage:
    python -m scripts.seed_sectors
    # or from project root:
    python scripts/seed_sectors.py
"""

import asyncio
import sys
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from vault_sentry.audit.service import AuditService
from vault_sentry.common.config import get_settings
from vault_sentry.common.database import DatabaseManager
from vault_sentry.grants.service import GrantLedger
from vault_sentry.sectors.service import DEFAULT_SECTORS, SectorRegistry


async def seed_sectors() -> None:
    settings = get_settings()
    db = DatabaseManager(settings)
    await db.init()
    await db.create_all()

    audit = AuditService(settings)
    registry = SectorRegistry(settings, audit, GrantLedger(settings, audit))

    async with db.get_session() as session:
        await registry.get_settings(session)
        for name, level in DEFAULT_SECTORS:
            if await registry.get_sector(session, name) is not None:
                print(f"  [skip] {name} already exists")
                continue
            await registry.add_sector(session, name, level, "system")
            print(f"  [created] {name} ({level.value})")

    await db.close()
    print(f"\nDone. {len(DEFAULT_SECTORS)} sectors checked.")


if __name__ == "__main__":
    asyncio.run(seed_sectors())
