"""Seed a demo patient, a linked caregiver and one medication for local runs."""
from __future__ import annotations

import asyncio
from datetime import UTC, datetime

from sqlalchemy import select

from medicontrol.core.config import get_settings
from medicontrol.core.security import get_password_hash
from medicontrol.db.session import get_sessionmaker
from medicontrol.models import (
    CaregiverRelationship,
    DoseUnit,
    Medication,
    RelationshipStatus,
    User,
    UserProfile,
)

PATIENT_EMAIL = "patient@medicontrol.local"
CAREGIVER_EMAIL = "caregiver@medicontrol.local"
PASSWORD = "medicontrol123"


async def main() -> None:
    settings = get_settings()
    sessionmaker = get_sessionmaker(settings.database_url)
    async with sessionmaker() as session:
        existing = await session.execute(select(User.id).where(User.email == PATIENT_EMAIL))
        if existing.first():
            print(f"User {PATIENT_EMAIL} already exists")
            return

        patient = User(
            email=PATIENT_EMAIL,
            hashed_password=get_password_hash(PASSWORD),
            name="Demo Patient",
            phone="+34600000001",
        )
        caregiver = User(
            email=CAREGIVER_EMAIL,
            hashed_password=get_password_hash(PASSWORD),
            name="Demo Caregiver",
            phone="+34600000002",
        )
        session.add_all([patient, caregiver])
        await session.flush()

        session.add_all(
            [
                UserProfile(
                    user_id=patient.id,
                    age=72,
                    allergies=["penicillin"],
                    conditions=["atrial fibrillation"],
                    onboarding_completed=True,
                ),
                UserProfile(user_id=caregiver.id, allergies=[], conditions=[]),
                Medication(
                    user_id=patient.id,
                    name="Sintrom",
                    generic_name="acenocoumarol",
                    dose=4,
                    dose_unit=DoseUnit.MG,
                    schedules=["09:00", "21:00"],
                    stock=20,
                    stock_unit="tablets",
                    is_critical=True,
                    critical_alert_delay=30,
                ),
                CaregiverRelationship(
                    patient_id=patient.id,
                    caregiver_user_id=caregiver.id,
                    caregiver_email=CAREGIVER_EMAIL,
                    caregiver_name=caregiver.name,
                    relationship="child",
                    can_view_history=True,
                    status=RelationshipStatus.ACTIVE,
                    accepted_at=datetime.now(UTC),
                ),
            ]
        )
        await session.commit()
        print(f"Created {PATIENT_EMAIL} and {CAREGIVER_EMAIL} / {PASSWORD}")


if __name__ == "__main__":
    asyncio.run(main())
