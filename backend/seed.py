import asyncio
from datetime import datetime, timezone
from sqlalchemy import select
from groupladder import db
from groupladder.models import FriendGroup, Season, Player

DEMO_GROUP_ID = "demo-group"
DEMO_SEASON_ID = "demo-group-s1"


async def main():
    db.get_engine()
    async with db.AsyncSessionLocal() as s:
        if await s.get(FriendGroup, DEMO_GROUP_ID) is None:
            s.add(
                FriendGroup(
                    id=DEMO_GROUP_ID,
                    name="Office Foosball",
                    sport_type="foosball",
                    supported_match_types=["1v1", "2v2"],
                )
            )
            await s.commit()

        if await s.get(Season, DEMO_SEASON_ID) is None:
            s.add(
                Season(
                    id=DEMO_SEASON_ID,
                    group_id=DEMO_GROUP_ID,
                    name="Season 1",
                    season_number=1,
                    is_active=True,
                    start_date=datetime.now(timezone.utc),
                )
            )
            await s.commit()

        # sample players
        existing_players = {
            x.id
            for x in (
                await s.execute(select(Player).where(Player.group_id == DEMO_GROUP_ID))
            ).scalars().all()
        }
        players = [
            Player(id="demo-alex", group_id=DEMO_GROUP_ID, name="Alex Ruiz"),
            Player(id="demo-bella", group_id=DEMO_GROUP_ID, name="Bella Fernandez"),
            Player(id="demo-carlos", group_id=DEMO_GROUP_ID, name="Carlos Mendez"),
            Player(id="demo-diana", group_id=DEMO_GROUP_ID, name="Diana Soto"),
        ]
        for p in players:
            if p.id not in existing_players:
                s.add(p)
        await s.commit()


if __name__ == "__main__":
    asyncio.run(main())
