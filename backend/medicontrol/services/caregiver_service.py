"""Caregiver contacts, relationships and the caregiver-facing patient view."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.models import (
    Caregiver,
    CaregiverRelationship,
    Notification,
    NotificationType,
    RelationshipStatus,
    User,
)
from medicontrol.schemas.caregiver import (
    CaregiverAlertCreate,
    CaregiverUpsert,
    DaySummary,
    PatientInfo,
    PatientSummary,
    PatientView,
    RelationshipCreate,
    RelationshipPermissions,
)
from medicontrol.schemas.dose_record import DoseRecordRead
from medicontrol.schemas.medication import MedicationRead
from medicontrol.services import (
    dose_service,
    medication_service,
    notifications_service,
    user_service,
)

logger = logging.getLogger(__name__)

_RELATIONSHIP_LABELS = {
    "son": "your son",
    "daughter": "your daughter",
    "child": "your child",
    "spouse": "your spouse",
    "husband": "your husband",
    "wife": "your wife",
    "partner": "your partner",
    "parent": "your parent",
    "father": "your father",
    "mother": "your mother",
    "brother": "your brother",
    "sister": "your sister",
    "grandchild": "your grandchild",
    "doctor": "your doctor",
    "nurse": "your nurse",
    "friend": "your friend",
    "caregiver": "your caregiver",
}

_ALERT_TITLES = {
    "difficulty": "{name} needs help",
    "panic": "Emergency alert from {name}",
    "side_effect": "{name} reported a side effect",
    "other": "Message from {name}",
}

_SECTION_WORDING = {"medications": "your medications", "doses": "today's doses"}


def relationship_label(relationship: str | None) -> str:
    """Friendly wording for a relationship tag."""
    return _RELATIONSHIP_LABELS.get((relationship or "").strip().lower(), "your family member")


def viewed_wording(sections: list[str]) -> str:
    parts = [_SECTION_WORDING[section] for section in sections if section in _SECTION_WORDING]
    return " and ".join(parts) or "your shared profile"


# ----------------------------------------------------------------------
# Caregiver contacts owned by a patient
# ----------------------------------------------------------------------
async def list_caregivers(session: AsyncSession, *, user_id: str) -> list[Caregiver]:
    result = await session.execute(
        select(Caregiver)
        .where(Caregiver.user_id == user_id)
        .order_by(Caregiver.created_at.desc(), Caregiver.id)
    )
    return list(result.scalars().all())


async def upsert_caregiver(
    session: AsyncSession,
    payload: CaregiverUpsert,
    *,
    user_id: str,
    caregiver_id: str,
) -> tuple[Caregiver, bool]:
    caregiver = await session.get(Caregiver, caregiver_id)
    if caregiver is not None and caregiver.user_id != user_id:
        raise ValueError("Caregiver not found")
    created = caregiver is None
    if created:
        caregiver = Caregiver(id=caregiver_id, user_id=user_id)
        session.add(caregiver)
    for field, value in payload.model_dump().items():
        setattr(caregiver, field, value)
    await session.commit()
    await session.refresh(caregiver)
    return caregiver, created


async def delete_caregiver(session: AsyncSession, *, user_id: str, caregiver_id: str) -> None:
    caregiver = await session.get(Caregiver, caregiver_id)
    if caregiver is None or caregiver.user_id != user_id:
        raise ValueError("Caregiver not found")
    await session.delete(caregiver)
    await session.commit()


# ----------------------------------------------------------------------
# Relationships between caregiver accounts and patients
# ----------------------------------------------------------------------
async def create_relationship(
    session: AsyncSession,
    payload: RelationshipCreate,
    *,
    patient: User,
) -> CaregiverRelationship:
    email = str(payload.caregiver_email).lower()
    if email == patient.email:
        raise ValueError("You cannot be your own caregiver")
    caregiver_user = await user_service.get_user_by_email(session, email=email)
    relationship = CaregiverRelationship(
        patient_id=patient.id,
        caregiver_user_id=caregiver_user.id if caregiver_user else None,
        caregiver_email=email,
        caregiver_name=payload.caregiver_name or (caregiver_user.name if caregiver_user else None),
        relationship=payload.relationship,
        status=RelationshipStatus.PENDING,
        **payload.model_dump(include=set(RelationshipPermissions.model_fields)),
    )
    session.add(relationship)
    await session.commit()
    await session.refresh(relationship)
    return relationship


async def list_relationships(
    session: AsyncSession, *, patient_id: str
) -> list[CaregiverRelationship]:
    result = await session.execute(
        select(CaregiverRelationship)
        .where(CaregiverRelationship.patient_id == patient_id)
        .order_by(CaregiverRelationship.created_at.desc())
    )
    return list(result.scalars().all())


async def accept_relationship(
    session: AsyncSession,
    *,
    caregiver: User,
    relationship_id: str,
) -> CaregiverRelationship:
    relationship = await session.get(CaregiverRelationship, relationship_id)
    if relationship is None or relationship.status == RelationshipStatus.REVOKED:
        raise ValueError("Relationship not found")
    if relationship.caregiver_user_id not in (None, caregiver.id) or (
        relationship.caregiver_user_id is None and relationship.caregiver_email != caregiver.email
    ):
        raise PermissionError("This invitation was sent to someone else")
    relationship.caregiver_user_id = caregiver.id
    if relationship.status != RelationshipStatus.ACTIVE:
        relationship.status = RelationshipStatus.ACTIVE
        relationship.accepted_at = datetime.now(UTC)
    await session.commit()
    await session.refresh(relationship)
    return relationship


async def revoke_relationship(
    session: AsyncSession,
    *,
    patient: User,
    relationship_id: str,
) -> CaregiverRelationship:
    relationship = await session.get(CaregiverRelationship, relationship_id)
    if relationship is None or relationship.patient_id != patient.id:
        raise ValueError("Relationship not found")
    relationship.status = RelationshipStatus.REVOKED
    await session.commit()
    await session.refresh(relationship)
    return relationship


def _active_for(caregiver: User):
    return (
        CaregiverRelationship.status == RelationshipStatus.ACTIVE,
        or_(
            CaregiverRelationship.caregiver_user_id == caregiver.id,
            CaregiverRelationship.caregiver_email == caregiver.email,
        ),
    )


async def find_active_relationship(
    session: AsyncSession,
    *,
    caregiver: User,
    patient_id: str,
) -> CaregiverRelationship | None:
    result = await session.execute(
        select(CaregiverRelationship)
        .where(CaregiverRelationship.patient_id == patient_id, *_active_for(caregiver))
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_patients(session: AsyncSession, *, caregiver: User) -> list[PatientSummary]:
    result = await session.execute(
        select(CaregiverRelationship, User)
        .join(User, User.id == CaregiverRelationship.patient_id)
        .where(*_active_for(caregiver))
        .order_by(User.name)
    )
    return [
        PatientSummary(
            relationship_id=relationship.id,
            patient_id=patient.id,
            patient_name=patient.name,
            patient_email=patient.email,
            relationship=relationship.relationship,
            relationship_label=relationship_label(relationship.relationship),
            permissions=RelationshipPermissions.model_validate(relationship),
        )
        for relationship, patient in result.all()
    ]


async def build_patient_view(
    session: AsyncSession,
    *,
    caregiver: User,
    patient_id: str,
    today: date | None = None,
) -> PatientView:
    """Return what ``caregiver`` may see of ``patient_id`` and tell the patient.

    Raises ``PermissionError`` when no active relationship links the two.
    """
    relationship = await find_active_relationship(
        session, caregiver=caregiver, patient_id=patient_id
    )
    if relationship is None:
        raise PermissionError("No active caregiver relationship for this patient")
    patient = await session.get(User, patient_id)
    if patient is None:
        raise ValueError("Patient not found")

    today = today or datetime.now(UTC).date()
    view = PatientView(
        patient=PatientInfo(
            id=patient.id, name=patient.name, email=patient.email, phone=patient.phone
        ),
        relationship=relationship.relationship,
        relationship_label=relationship_label(relationship.relationship),
        permissions=RelationshipPermissions.model_validate(relationship),
    )
    sections: list[str] = []
    if relationship.can_view_medications:
        medications = await medication_service.list_medications(
            session, user_id=patient_id, active_only=True
        )
        view.medications = [MedicationRead.model_validate(m) for m in medications]
        sections.append("medications")
    if relationship.can_view_doses:
        records = await dose_service.list_dose_records(
            session, user_id=patient_id, start_date=today, end_date=today
        )
        view.dose_records = [DoseRecordRead.model_validate(r) for r in records]
        view.today_summary = DaySummary(**dose_service.summarize(records))
        sections.append("doses")

    caregiver_name = caregiver.name or relationship.caregiver_name or "Your caregiver"
    await _notify_patient_of_view(
        session,
        patient_id=patient_id,
        caregiver=caregiver,
        caregiver_name=caregiver_name,
        relationship=relationship.relationship,
        sections=sections,
    )
    return view


async def _notify_patient_of_view(
    session: AsyncSession,
    *,
    patient_id: str,
    caregiver: User,
    caregiver_name: str,
    relationship: str,
    sections: list[str],
) -> None:
    try:
        async with session.begin_nested():
            await notifications_service.notify(
                session,
                user_id=patient_id,
                type=NotificationType.CAREGIVER_VIEW,
                title=f"{caregiver_name} checked your records",
                message=(
                    f"{caregiver_name}, {relationship_label(relationship)}, just reviewed "
                    f"{viewed_wording(sections)}."
                ),
                priority=1,
                data={
                    "caregiver_name": caregiver_name,
                    "caregiver_relationship": relationship,
                    "caregiver_user_id": caregiver.id,
                    "viewed_at": datetime.now(UTC).isoformat(),
                    "sections_viewed": sections,
                },
                commit=False,
            )
        await session.commit()
    except SQLAlchemyError:
        logger.warning("Could not record caregiver view for patient %s", patient_id, exc_info=True)


async def send_caregiver_alert(
    session: AsyncSession,
    payload: CaregiverAlertCreate,
    *,
    patient: User,
) -> Notification:
    relationship = await session.get(CaregiverRelationship, payload.caregiver_id)
    if (
        relationship is None
        or relationship.patient_id != patient.id
        or relationship.status == RelationshipStatus.REVOKED
    ):
        raise ValueError("Caregiver not found")

    name = patient.name or "Your patient"
    title = _ALERT_TITLES[payload.type].format(name=name)
    message = payload.message or (
        f"{name} needs help with their medication"
        + (f" ({payload.medication_name})" if payload.medication_name else "")
        + "."
    )
    return await notifications_service.notify(
        session,
        user_id=relationship.caregiver_user_id or patient.id,
        type=NotificationType.CAREGIVER_ALERT,
        title=title,
        message=message,
        priority=3 if payload.type == "panic" else 2,
        data={
            "patient_id": patient.id,
            "patient_name": patient.name,
            "caregiver_id": relationship.id,
            "alert_type": payload.type,
            "medication_name": payload.medication_name,
        },
    )
