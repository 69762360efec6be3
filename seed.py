"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 6 riders and 1 vendor (password for all: ``password123``)
  - 4 rides (outbound and return, open and assigned)
  - passengers on each ride, with one return ride's drop-offs locked

Everything goes through the domain services, so the seeded rows satisfy
the same capacity and sequencing invariants as API-created ones.
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from src.domain.accounts import AccountService
from src.domain.entities import Actor, DropoffLocation
from src.domain.enums import Direction
from src.domain.lifecycle import RideService
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.locks import RideLockManager
from src.infrastructure.repositories import SqlAlchemyRideStore

PASSWORD = "password123"

USERS = [
    {"username": "alex.tan", "full_name": "Alex Tan", "whatsapp_number": "+6591234567"},
    {"username": "priya.n", "full_name": "Priya Nair", "whatsapp_number": "+6592345678"},
    {"username": "wei.ling", "full_name": "Wei Ling", "phone_number": "+60123456789"},
    {"username": "marcus.l", "full_name": "Marcus Lee", "payment_handle": "@marcusl"},
    {"username": "sara.k", "full_name": "Sara Kim", "whatsapp_number": "+6593456789"},
    {"username": "daniel.o", "full_name": "Daniel Ong", "phone_number": "+60198765432"},
]

VENDOR = {
    "username": "straits.transport",
    "full_name": "Straits Transport",
    "is_vendor": True,
    "company_name": "Straits Transport Sdn Bhd",
    "vendor_details": {"name": "Rahman", "contact": "+60112223344", "carNumber": "JQA 4821"},
}


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        store = SqlAlchemyRideStore(session)
        accounts = AccountService(store)
        rides = RideService(store, RideLockManager())

        # ── Users ─────────────────────────────────────────────────────
        users = [await accounts.register(password=PASSWORD, **u) for u in USERS]
        vendor = await accounts.register(password=PASSWORD, **VENDOR)
        actors = [Actor(u.id) for u in users]
        print(f"  Created {len(users)} riders and 1 vendor")

        tomorrow = datetime.now(timezone.utc).replace(
            hour=9, minute=0, second=0, microsecond=0
        ) + timedelta(days=1)

        # ── Outbound ride, open ───────────────────────────────────────
        outbound = await rides.create_ride(
            actors[0],
            direction=Direction.OUTBOUND,
            date=tomorrow,
            max_passengers=4,
            pickup_location="Tanjong Pagar MRT Exit A",
            dropoff_locations=[DropoffLocation("Forest City Phase 1 Lobby", 1)],
        )
        await rides.join_ride(actors[0], outbound.id, dropoff_location="Phase 1 Lobby")
        await rides.join_ride(
            actors[1], outbound.id, dropoff_location="Golf Resort", passenger_count=2
        )

        # ── Return ride, drop-offs locked ─────────────────────────────
        locked = await rides.create_ride(
            actors[2],
            direction=Direction.RETURN,
            date=tomorrow + timedelta(hours=8),
            max_passengers=4,
            pickup_location="Forest City Phase 1 Lobby",
            dropoff_locations=[
                DropoffLocation("Bishan", 1),
                DropoffLocation("Tampines", 1),
                DropoffLocation("Jurong East", 1),
            ],
        )
        for actor, stop in zip(actors[2:5], ("Bishan", "Tampines", "Jurong East")):
            await rides.join_ride(actor, locked.id, dropoff_location=stop)
        passengers = await rides.list_passengers(locked.id)
        await rides.reorder_passenger(actors[2], locked.id, passengers[2].id, 1)
        await rides.lock_sequence(actors[2], locked.id)

        # ── Return ride, still being arranged ─────────────────────────
        arranging = await rides.create_ride(
            actors[3],
            direction=Direction.RETURN,
            date=tomorrow + timedelta(days=1, hours=8),
            max_passengers=6,
            pickup_location="Forest City Marina",
            dropoff_locations=[DropoffLocation("Clementi", 2), DropoffLocation("Orchard", 1)],
        )
        await rides.join_ride(
            actors[3], arranging.id, dropoff_location="Clementi", passenger_count=2
        )
        await rides.join_ride(actors[5], arranging.id, dropoff_location="Orchard")

        # ── Outbound ride, assigned to the vendor ─────────────────────
        assigned = await rides.create_ride(
            actors[4],
            direction=Direction.OUTBOUND,
            date=tomorrow + timedelta(days=2),
            max_passengers=3,
            pickup_location="Woodlands Checkpoint",
            dropoff_locations=[DropoffLocation("Forest City Phase 2", 3)],
            cost=90,
        )
        await rides.join_ride(
            actors[4], assigned.id, dropoff_location="Phase 2", passenger_count=3
        )
        await rides.assign_vendor(Actor(vendor.id, is_vendor=True), assigned.id)
        print("  Created 4 rides")

        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
