#!/usr/bin/env python3
"""
Remove the generated calendar of a league so it can be regenerated.

Usage:
    python scripts/remove_league_calendar.py <league_id>
    python scripts/remove_league_calendar.py            (lists leagues)
"""

import asyncio
import os
import sys

# Add apps to path (so padel_backend.* imports work)
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
apps_path = os.path.join(project_root, "apps")
sys.path.insert(0, apps_path)

from padel_backend.database.db import AsyncSessionLocal
from padel_backend.services import calendar_service, data_service
from padel_backend.utils.exceptions import NotFoundError


async def list_leagues(session):
    """Print available leagues for reference."""
    leagues = await data_service.list_leagues(session)
    if not leagues:
        print("❌ No leagues found in the database.")
        return
    print("\n📋 Leagues:")
    for league in leagues:
        detail = await data_service.get_league(session, league["id"])
        print(
            f"  League #{league['id']:<4} {league['name']:<30} "
            f"{league['team_count']} teams, {detail['match_count']} matches"
        )
    print()


async def remove_league_calendar(league_id: int = None):
    """Delete every match of a league."""
    async with AsyncSessionLocal() as session:
        if league_id is None:
            print("❌ Usage: python scripts/remove_league_calendar.py <league_id>")
            await list_leagues(session)
            return

        try:
            league = await data_service.get_league(session, league_id)
        except NotFoundError as e:
            print(f"❌ {e}")
            return

        print("=" * 60)
        print(f"🗑️  Removing calendar for league: {league['name']} (ID: {league_id})")
        print("=" * 60)

        try:
            result = await calendar_service.clear_calendar(session, league_id)
            await session.commit()
        except Exception as e:
            await session.rollback()
            print(f"❌ Error removing calendar: {str(e)}")
            return

        print(f"✓ Deleted {result['deleted']} match(es)")
        print("\n✅ Calendar removed. The league can now be regenerated.")


if __name__ == "__main__":
    arg = sys.argv[1] if len(sys.argv) > 1 else None
    asyncio.run(remove_league_calendar(int(arg) if arg else None))
