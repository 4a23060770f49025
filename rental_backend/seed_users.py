"""
Database seeding script for the back office.

Creates an ADMIN and a STAFF user plus a few demo cars for development.
Run this script after database is set up but before first use.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rental_backend.app.core.clock import Clock, new_id
from rental_backend.app.core.security import hash_password
from rental_backend.app.db.repository import repository
from rental_backend.app.db.session import engine, Base
from rental_backend.app.models.enums import Collection, UserRole
from rental_backend.app.models.stored_record import StoredRecord  # noqa: F401
from rental_backend.app.models.user import User
from rental_backend.app.services.car_service import CarService

SEED_USERS = [
    ("admin@rental.az", "admin123", UserRole.ADMIN),
    ("desk@rental.az", "desk123", UserRole.STAFF),
]

DEMO_CARS = [
    {"brand": "Toyota", "model": "Corolla", "year": 2021, "plate": "10-AB-123", "base_price_per_day": 60},
    {"brand": "Hyundai", "model": "Elantra", "year": 2022, "plate": "90-KL-456", "base_price_per_day": 70},
    {"brand": "Kia", "model": "Sportage", "year": 2023, "plate": "77-ZZ-789", "base_price_per_day": 95},
]


async def seed_users():
    """
    Seed initial users and demo cars.

    Skips users whose email already exists and cars when any car exists.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    clock = Clock()
    print("🌱 Starting seeding...")

    async with repository.lock(Collection.USERS):
        raw_users = await repository.load_all(Collection.USERS)
        known = {str(record.get("email", "")).lower() for record in raw_users if isinstance(record, dict)}

        for email, password, role in SEED_USERS:
            if email in known:
                print(f"ℹ️  {email} already exists, skipping")
                continue
            user = User(
                id=new_id(),
                email=email,
                password_hash=hash_password(password),
                role=role,
                is_active=True,
                created_at=clock.now()
            )
            raw_users.append(user.to_record())
            print(f"✅ Created {role.value} user ({email} / {password})")

        await repository.save_all(Collection.USERS, raw_users)

    if await CarService.list_cars(repository):
        print("ℹ️  Cars already exist, skipping demo fleet")
    else:
        for car_data in DEMO_CARS:
            car = await CarService.create_car(repository, clock, car_data)
            print(f"🚗 Created car {car.title}")

    await engine.dispose()
    print("\n🎉 Seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(seed_users())
