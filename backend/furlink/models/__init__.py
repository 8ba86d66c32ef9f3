"""SQLAlchemy models."""

from __future__ import annotations

from furlink.models.alert_attachment import AlertAttachment
from furlink.models.alert_response import AlertResponse
from furlink.models.emergency_alert import EmergencyAlert
from furlink.models.pet import Pet
from furlink.models.user import User

__all__ = [
    "User",
    "Pet",
    "EmergencyAlert",
    "AlertAttachment",
    "AlertResponse",
]
