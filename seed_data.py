"""
Seed data for local development
Creates staff users, visitors, appointments and a few issued passes
"""
import asyncio
from datetime import timedelta

from dotenv import load_dotenv
load_dotenv()

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from domain.capabilities import CurrentUser, Role
from domain.models import Appointment, User, Visitor
from domain.schemas import IssuePassRequest
from domain.services.passes import issue_pass
from domain.timeutils import utcnow
from infrastructure.database import dispose_engine, get_engine, init_db
from infrastructure.qr import get_qr_encoder


async def seed_database():
    """Seed the database with sample data"""
    print("🌱 Starting database seeding...")

    await init_db()
    print("✅ Database initialized")

    engine = get_engine()
    async with AsyncSession(engine, expire_on_commit=False) as session:

        # 1. Staff
        print("\n👥 Creating users...")
        users_data = [
            {"name": "Ada Admin", "email": "admin@example.com", "role": Role.ADMIN.value, "department": "Facilities"},
            {"name": "Erin Employee", "email": "erin@example.com", "role": Role.EMPLOYEE.value, "department": "Engineering"},
            {"name": "Sam Security", "email": "security@example.com", "role": Role.SECURITY.value, "department": "Security"},
        ]
        users = []
        for data in users_data:
            user = User(**data)
            session.add(user)
            users.append(user)
        await session.commit()
        for user in users:
            print(f"   ✅ {user.name} ({user.role}) ID: {user.id}")
        admin, employee, _ = users

        # 2. Visitors
        print("\n🧑 Creating visitors...")
        visitors_data = [
            {"name": "Maria Gonzalez", "email": "maria@acme.test", "phone": "+1 555 0101", "company": "Acme"},
            {"name": "Pedro Ramirez", "email": "pedro@globex.test", "phone": "+1 555 0102", "company": "Globex"},
            {"name": "Lena Fischer", "email": "lena@initech.test", "phone": "+1 555 0103", "company": "Initech"},
        ]
        visitors = []
        for data in visitors_data:
            visitor = Visitor(**data, created_by=employee.id)
            session.add(visitor)
            visitors.append(visitor)
        await session.commit()
        print(f"   ✅ {len(visitors)} visitors")

        # 3. Appointments
        print("\n📅 Creating appointments...")
        now = utcnow()
        appointment = Appointment(
            visitor_id=visitors[0].id,
            host_id=employee.id,
            scheduled_at=now + timedelta(minutes=15),
            purpose="Quarterly review",
            created_by=employee.id,
        )
        session.add(appointment)
        await session.commit()
        print(f"   ✅ Appointment for {visitors[0].name}")

        # 4. Passes (one per visitor, spread across buildings and exit times)
        print("\n🎫 Issuing passes...")
        encoder = get_qr_encoder()
        issuer = CurrentUser(id=employee.id, role=Role.EMPLOYEE)
        plans = [
            (visitors[0], "HQ", timedelta(hours=3), appointment),
            (visitors[1], "HQ", timedelta(minutes=20), None),
            (visitors[2], "Lab", timedelta(minutes=-10), None),
        ]
        for visitor, building, remaining, appt in plans:
            issued = await issue_pass(
                session,
                encoder,
                IssuePassRequest(
                    visitor=str(visitor.id),
                    host=str(employee.id),
                    appointment=str(appt.id) if appt else None,
                    valid_from=now - timedelta(hours=1),
                    valid_to=now + remaining,
                    building=building,
                    purpose=appt.purpose if appt else "Meeting",
                ),
                issuer,
            )
            print(f"   ✅ {issued.pass_number} for {visitor.name} in {building}")

    await dispose_engine()

    print("\n" + "=" * 60)
    print("✅ DATABASE SEEDED SUCCESSFULLY!")
    print("=" * 60)
    print("\n🔑 Request headers for API calls:")
    print(f"   admin:    X-User-Id: {admin.id}  X-User-Role: admin")
    print(f"   employee: X-User-Id: {employee.id}  X-User-Role: employee")
    print("\n💡 Try: GET http://localhost:8000/api/passes/live")
    print()


async def clear_database():
    """Clear all data from database (DANGER!)"""
    print("⚠️  CLEARING DATABASE...")

    import domain.models  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)

    await dispose_engine()
    print("✅ Database cleared and recreated")


if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1 and sys.argv[1] == "--clear":
        print("⚠️  WARNING: This will delete ALL data!")
        confirm = input("Type 'yes' to confirm: ")
        if confirm.lower() == "yes":
            asyncio.run(clear_database())
            asyncio.run(seed_database())
        else:
            print("Aborted.")
    else:
        asyncio.run(seed_database())
