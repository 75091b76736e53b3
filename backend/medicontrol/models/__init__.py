"""ORM models package export."""

from medicontrol.models.alert_record import AlertKind, AlertRecord
from medicontrol.models.caregiver import Caregiver, CaregiverRelationship, RelationshipStatus
from medicontrol.models.dose_record import DoseRecord, DoseStatus
from medicontrol.models.medication import DoseUnit, FrequencyType, Medication, MedicationStatus
from medicontrol.models.notification import Notification, NotificationType
from medicontrol.models.revoked_token import RevokedToken
from medicontrol.models.user import User, UserProfile, UserStatus
from medicontrol.models.voice_note import VoiceNote

__all__ = [
    "AlertKind",
    "AlertRecord",
    "Caregiver",
    "CaregiverRelationship",
    "DoseRecord",
    "DoseStatus",
    "DoseUnit",
    "FrequencyType",
    "Medication",
    "MedicationStatus",
    "Notification",
    "NotificationType",
    "RelationshipStatus",
    "RevokedToken",
    "User",
    "UserProfile",
    "UserStatus",
    "VoiceNote",
]
