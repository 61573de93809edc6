"""
Seed script to populate database with sample data for testing

Usage:
    python -m hotel_booking.scripts.seed_data
"""
import asyncio
from decimal import Decimal
from sqlalchemy import select

from hotel_booking.core.database import AsyncSessionLocal, init_db
from hotel_booking.models import User, UserRole, RoomType, Room


async def create_sample_users(db):
    """Create sample users"""
    users_data = [
        {"first_name": "John", "last_name": "Doe", "email": "john@example.com", "role": UserRole.GUEST},
        {"first_name": "Jane", "last_name": "Smith", "email": "jane@example.com", "role": UserRole.GUEST},
        {"first_name": "Front", "last_name": "Desk", "email": "desk@example.com", "role": UserRole.ADMIN},
    ]

    users = []
    for user_data in users_data:
        # Check if user already exists
        result = await db.execute(
            select(User).where(User.email == user_data["email"])
        )
        existing_user = result.scalar_one_or_none()

        if existing_user:
            print(f"User {user_data['email']} already exists, skipping...")
            users.append(existing_user)
            continue

        user = User(**user_data)
        db.add(user)
        users.append(user)
        print(f"Created user: {user.email} ({user.role.value})")

    await db.commit()
    return users


async def create_sample_room_types(db):
    """Create sample room types"""
    room_types_data = [
        {
            "name": "Standard",
            "description": "Queen bed, city view",
            "base_price": Decimal("100.00"),
            "max_guests": 2,
        },
        {
            "name": "Deluxe",
            "description": "King bed and sofa bed, sea view",
            "base_price": Decimal("150.00"),
            "max_guests": 4,
        },
        {
            "name": "Suite",
            "description": "Two bedrooms, living room and balcony",
            "base_price": Decimal("320.00"),
            "max_guests": 6,
        },
    ]

    room_types = {}
    for data in room_types_data:
        result = await db.execute(select(RoomType).where(RoomType.name == data["name"]))
        room_type = result.scalar_one_or_none()

        if room_type:
            print(f"Room type {data['name']} already exists, skipping...")
        else:
            room_type = RoomType(**data)
            db.add(room_type)
            print(f"Created room type: {room_type.name} (${room_type.base_price}/night)")

        room_types[data["name"]] = room_type

    await db.commit()
    return room_types


async def create_sample_rooms(db, room_types):
    """Create rooms: floors 1-2 standard, 3 deluxe, 4 suites"""
    layout = [
        (1, "Standard", 6),
        (2, "Standard", 6),
        (3, "Deluxe", 4),
        (4, "Suite", 2),
    ]

    created = 0
    for floor, type_name, count in layout:
        for n in range(1, count + 1):
            room_number = f"{floor}{n:02d}"
            result = await db.execute(select(Room).where(Room.room_number == room_number))
            if result.scalar_one_or_none():
                continue

            db.add(Room(
                room_number=room_number,
                room_type_id=room_types[type_name].id,
                floor=floor,
            ))
            created += 1

    await db.commit()
    print(f"Created {created} rooms")


async def main():
    """Main seed function"""
    print("Starting database seeding...")

    print("\nInitializing database...")
    await init_db()

    async with AsyncSessionLocal() as db:
        print("\nCreating users...")
        users = await create_sample_users(db)

        print("\nCreating room types...")
        room_types = await create_sample_room_types(db)

        print("\nCreating rooms...")
        await create_sample_rooms(db, room_types)

    print("\nDatabase seeding completed!")
    print("\nSample users:")
    for user in users:
        print(f"   - id={user.id} {user.email} (X-User-Role: {user.role.value})")


if __name__ == "__main__":
    asyncio.run(main())
