"""Emergency alert model."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from furlink.core.alert_policies import URGENCY_WEIGHTS
from furlink.core.clock import as_utc
from furlink.db.base import Base

if TYPE_CHECKING:
    from furlink.models.alert_attachment import AlertAttachment
    from furlink.models.alert_response import AlertResponse


class EmergencyAlert(Base):
    """Emergency report tying a pet, a reporter, a location and a time window together."""

    __tablename__ = "emergency_alerts"
    __table_args__ = (
        Index("ix_emergency_alerts_status_urgency_created", "status", "urgency_level", "created_at"),
        Index("ix_emergency_alerts_location", "latitude", "longitude"),
        Index("ix_emergency_alerts_type_status", "alert_type", "status"),
        Index("ix_emergency_alerts_reporter_created", "reporter_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    alert_type: Mapped[str] = mapped_column(String(32), nullable=False)
    pet_id: Mapped[int] = mapped_column(ForeignKey("pets.id", ondelete="CASCADE"), nullable=False)
    reporter_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Location
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[str | None] = mapped_column(String(300), nullable=True)
    location_accuracy: Mapped[float | None] = mapped_column(Float, nullable=True)  # metres

    incident_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    report_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    urgency_level: Mapped[str] = mapped_column(String(16), nullable=False, default="medium")  # low | medium | high | critical
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")  # active | resolved | cancelled | expired
    contact_info: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Propagation settings
    force_propagation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    propagation_radius_km: Mapped[float] = mapped_column(Float, nullable=False, default=5.0)
    propagation_delay_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    propagation_duration_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=24)

    # Propagation stats (never decrease)
    total_reached: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_shares: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_responses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    attachments: Mapped[list[AlertAttachment]] = relationship(
        order_by="AlertAttachment.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    responses: Mapped[list[AlertResponse]] = relationship(
        order_by="AlertResponse.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    # ---------- derived values ----------

    def is_active(self, now: datetime) -> bool:
        """Active status and not past its expiry."""
        if self.status != "active":
            return False
        expires_at = as_utc(self.expires_at)
        return expires_at is None or expires_at > now

    def time_since_incident(self, now: datetime) -> timedelta:
        return now - as_utc(self.incident_time)

    def urgency_score(self, now: datetime) -> float:
        """Urgency weight plus a staleness bonus growing to +1 over the first 24h."""
        hours = self.time_since_incident(now).total_seconds() / 3600
        staleness = min(max(hours, 0.0) / 24, 1.0)
        return URGENCY_WEIGHTS.get(self.urgency_level, 0) + staleness
