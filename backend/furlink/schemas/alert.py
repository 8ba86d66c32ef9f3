"""Emergency alert schemas."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from furlink.core.alert_policies import (
    MAX_DESCRIPTION_LENGTH,
    MAX_EXTEND_HOURS,
    MAX_PROPAGATION_DELAY_S,
    MAX_PROPAGATION_DURATION_H,
    MAX_PROPAGATION_RADIUS_KM,
    MAX_RESPONSE_MESSAGE_LENGTH,
    MAX_TITLE_LENGTH,
    MIN_EXTEND_HOURS,
    MIN_PROPAGATION_DELAY_S,
    MIN_PROPAGATION_DURATION_H,
    MIN_PROPAGATION_RADIUS_KM,
)

AlertType = Literal["lost_pet", "found_pet", "medical_emergency", "accident", "natural_disaster"]
UrgencyLevel = Literal["low", "medium", "high", "critical"]
AlertStatus = Literal["active", "resolved", "cancelled", "expired"]
ResponseType = Literal["sighting", "help_offered", "information", "resolved"]
AttachmentType = Literal["photo", "video", "audio", "document"]
ContactMethod = Literal["phone", "wechat", "email"]


class Location(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: str | None = Field(default=None, max_length=300)
    accuracy: float | None = Field(default=None, ge=0, description="Accuracy radius in metres")


class ResponseLocation(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: str | None = Field(default=None, max_length=300)


class AttachmentIn(BaseModel):
    type: AttachmentType
    url: str = Field(min_length=1, max_length=2048)
    thumbnail: str | None = Field(default=None, max_length=2048)
    description: str | None = Field(default=None, max_length=200)


class ContactInfo(BaseModel):
    name: str | None = Field(default=None, max_length=50)
    phone: str | None = Field(default=None, max_length=32)
    wechat: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    preferred_contact: ContactMethod | None = None


class PropagationSettingsIn(BaseModel):
    """Caller overrides; unset fields fall back to policy defaults."""

    force_propagation: bool | None = None
    propagation_radius: float | None = Field(
        default=None, ge=MIN_PROPAGATION_RADIUS_KM, le=MAX_PROPAGATION_RADIUS_KM, description="km"
    )
    propagation_delay: int | None = Field(
        default=None, ge=MIN_PROPAGATION_DELAY_S, le=MAX_PROPAGATION_DELAY_S, description="seconds"
    )
    propagation_duration: int | None = Field(
        default=None, ge=MIN_PROPAGATION_DURATION_H, le=MAX_PROPAGATION_DURATION_H, description="hours"
    )


class AlertCreate(BaseModel):
    """Alert submission body. The reporter comes from the bearer token."""

    alert_type: AlertType
    pet_id: int
    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)
    description: str = Field(min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    location: Location
    incident_time: datetime
    urgency_level: UrgencyLevel = "medium"
    attachments: list[AttachmentIn] = []
    contact_info: ContactInfo | None = None
    propagation_settings: PropagationSettingsIn | None = None

    @field_validator("incident_time")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class AlertInput(AlertCreate):
    """Complete alert input as accepted by the store."""

    reporter_id: int


class AlertResponseCreate(BaseModel):
    response_type: ResponseType
    message: str | None = Field(default=None, max_length=MAX_RESPONSE_MESSAGE_LENGTH)
    location: ResponseLocation | None = None


class ExtendRequest(BaseModel):
    hours: int = Field(ge=MIN_EXTEND_HOURS, le=MAX_EXTEND_HOURS)


class PropagationStatsUpdate(BaseModel):
    """Cumulative totals reported by the notification service."""

    total_reached: int | None = Field(default=None, ge=0)
    total_views: int | None = Field(default=None, ge=0)
    total_shares: int | None = Field(default=None, ge=0)
    total_responses: int | None = Field(default=None, ge=0)


# ---------- responses ----------


class AttachmentOut(BaseModel):
    id: int
    type: str
    url: str
    thumbnail: str | None
    description: str | None
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class AlertResponseOut(BaseModel):
    id: int
    user_id: int
    response_type: str
    message: str | None
    location: ResponseLocation | None
    timestamp: datetime
    is_verified: bool


class PropagationSettingsOut(BaseModel):
    force_propagation: bool
    propagation_radius: float
    propagation_delay: int
    propagation_duration: int


class PropagationStatsOut(BaseModel):
    total_reached: int
    total_views: int
    total_shares: int
    total_responses: int


class AlertOut(BaseModel):
    id: int
    alert_type: str
    pet_id: int
    reporter_id: int
    title: str
    description: str
    location: Location
    incident_time: datetime
    report_time: datetime
    urgency_level: str
    status: AlertStatus
    attachments: list[AttachmentOut] = []
    contact_info: ContactInfo | None
    propagation_settings: PropagationSettingsOut
    responses: list[AlertResponseOut] = []
    propagation_stats: PropagationStatsOut
    expires_at: datetime | None
    created_at: datetime
    updated_at: datetime
    is_active: bool
    time_since_incident_seconds: float
    urgency_score: float
    distance_km: float | None = None


class AlertStatsOut(BaseModel):
    total: int
    active: int
    resolved: int
    today: int
    resolution_rate: float


class SweepResult(BaseModel):
    expired: int
