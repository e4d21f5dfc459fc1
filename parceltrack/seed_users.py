"""
Database seeding script for initial users.

Creates one ADMIN, one COURIER and one WAREHOUSE user for development.
Further accounts are created by an admin via POST /v1/users.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from parceltrack.app.db.session import AsyncSessionLocal, engine, Base
from parceltrack.app.models.user import User
from parceltrack.app.models.customer import Customer
from parceltrack.app.models.parcel import Parcel
from parceltrack.app.models.parcel_history import ParcelHistory
from parceltrack.app.models.audit_log import AuditLog
from parceltrack.app.models.enums import UserRole
from parceltrack.app.core.security import get_password_hash
from parceltrack.app.services.entity_store import get_user_by_email

SEED_USERS = [
    ("Admin", "admin@parcels.local", "admin1234", UserRole.ADMIN),
    ("Courier", "courier@parcels.local", "courier1234", UserRole.COURIER),
    ("Warehouse", "warehouse@parcels.local", "warehouse1234", UserRole.WAREHOUSE),
]


async def seed_users():
    """
    Seed initial users with different roles.
    
    Existing emails are left untouched, so the script can be re-run.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    async with AsyncSessionLocal() as db:
        print("🌱 Starting user seeding...")
        
        created = 0
        for name, email, password, role in SEED_USERS:
            if await get_user_by_email(db, email):
                print(f"ℹ️  {email} already exists, skipping")
                continue
            
            db.add(User(
                name=name,
                email=email,
                hashed_password=get_password_hash(password),
                role=role
            ))
            created += 1
            print(f"✅ Created {role.value} user ({email} / {password})")
        
        await db.commit()
        
        print(f"\n🎉 User seeding completed, {created} user(s) created")
    
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_users())
