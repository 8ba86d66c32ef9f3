"""Emergency alert store: persistence, field constraints, indexed retrieval.

Validation lives in ``validate_alert_input`` (pure, no database access); the
``AlertStore`` persists validated alerts and applies the status/counter
invariants on every mutation. Time comes from an injected clock so expiry
and ordering are testable.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Iterator, Mapping

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import case, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from furlink.core.alert_policies import (
    ALERT_TYPES,
    DEFAULT_FORCE_PROPAGATION,
    DEFAULT_PROPAGATION_DELAY_S,
    DEFAULT_PROPAGATION_DURATION_H,
    DEFAULT_PROPAGATION_RADIUS_KM,
    MAX_EXTEND_HOURS,
    MAX_RESPONSE_MESSAGE_LENGTH,
    MIN_EXTEND_HOURS,
    RESPONSE_TYPES,
    STAT_FIELDS,
    TERMINAL_STATUSES,
    URGENCY_WEIGHTS,
)
from furlink.core.clock import Clock, utcnow
from furlink.core.errors import NotFoundError, StorageError, ValidationError
from furlink.models.alert_attachment import AlertAttachment
from furlink.models.alert_response import AlertResponse
from furlink.models.emergency_alert import EmergencyAlert
from furlink.schemas.alert import AlertInput, PropagationSettingsIn, ResponseLocation
from furlink.services.geo_service import bounding_box

logger = logging.getLogger(__name__)

_URGENCY_RANK = case(URGENCY_WEIGHTS, value=EmergencyAlert.urgency_level, else_=0)


def validate_alert_input(payload: AlertInput | Mapping[str, Any]) -> AlertInput:
    """Validate raw alert data into an ``AlertInput``. Raises ValidationError."""
    if isinstance(payload, AlertInput):
        return payload
    try:
        return AlertInput.model_validate(payload)
    except PydanticValidationError as exc:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        first = errors[0]
        raise ValidationError(
            f"Invalid alert input: {first['field']}: {first['message']}",
            field=first["field"],
            errors=errors,
        ) from exc


class AlertStore:
    """CRUD and indexed queries over the emergency alert collection."""

    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    def now(self) -> datetime:
        return self.clock()

    @contextmanager
    def _storage(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Storage failure during %s: %s", operation, exc)
            raise StorageError(operation, str(exc)) from exc

    def _save(self, alert: EmergencyAlert, operation: str) -> EmergencyAlert:
        with self._storage(operation):
            self.db.commit()
            self.db.refresh(alert)
        return alert

    # ---------- create / read ----------

    def create(self, payload: AlertInput | Mapping[str, Any]) -> EmergencyAlert:
        """Persist a new active alert; ``expires_at`` = now + propagation duration."""
        data = validate_alert_input(payload)
        now = self.now()
        prop = data.propagation_settings or PropagationSettingsIn()
        duration = (
            DEFAULT_PROPAGATION_DURATION_H if prop.propagation_duration is None else prop.propagation_duration
        )

        alert = EmergencyAlert(
            alert_type=data.alert_type,
            pet_id=data.pet_id,
            reporter_id=data.reporter_id,
            title=data.title,
            description=data.description,
            latitude=data.location.latitude,
            longitude=data.location.longitude,
            address=data.location.address,
            location_accuracy=data.location.accuracy,
            incident_time=data.incident_time,
            report_time=now,
            urgency_level=data.urgency_level,
            status="active",
            contact_info=data.contact_info.model_dump(exclude_none=True) if data.contact_info else None,
            force_propagation=(
                DEFAULT_FORCE_PROPAGATION if prop.force_propagation is None else prop.force_propagation
            ),
            propagation_radius_km=(
                DEFAULT_PROPAGATION_RADIUS_KM if prop.propagation_radius is None else prop.propagation_radius
            ),
            propagation_delay_seconds=(
                DEFAULT_PROPAGATION_DELAY_S if prop.propagation_delay is None else prop.propagation_delay
            ),
            propagation_duration_hours=duration,
            total_reached=0,
            total_views=0,
            total_shares=0,
            total_responses=0,
            expires_at=now + timedelta(hours=duration),
            created_at=now,
            updated_at=now,
        )
        for att in data.attachments:
            alert.attachments.append(
                AlertAttachment(
                    type=att.type,
                    url=att.url,
                    thumbnail=att.thumbnail,
                    description=att.description,
                    uploaded_at=now,
                )
            )

        with self._storage("create"):
            self.db.add(alert)
        self._save(alert, "create")
        logger.info(
            "Alert %s created: %s [%s/%s] expires %s",
            alert.id, alert.title, alert.alert_type, alert.urgency_level, alert.expires_at,
        )
        return alert

    def get(self, alert_id: int) -> EmergencyAlert:
        """Alert by id. Raises NotFoundError."""
        with self._storage("get"):
            alert = self.db.get(EmergencyAlert, alert_id)
        if alert is None:
            raise NotFoundError("Alert", alert_id=alert_id)
        return alert

    def _unexpired(self, now: datetime):
        return or_(EmergencyAlert.expires_at.is_(None), EmergencyAlert.expires_at > now)

    def find_active(self, limit: int | None = None) -> list[EmergencyAlert]:
        """Active, unexpired alerts: most urgent first, then newest."""
        now = self.now()
        stmt = (
            select(EmergencyAlert)
            .where(EmergencyAlert.status == "active", self._unexpired(now))
            .order_by(_URGENCY_RANK.desc(), EmergencyAlert.created_at.desc(), EmergencyAlert.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._storage("find_active"):
            return list(self.db.execute(stmt).scalars().all())

    def find_nearby(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        alert_type: str | None = None,
    ) -> list[EmergencyAlert]:
        """Active, unexpired alerts inside the bounding box around a point."""
        if radius_km <= 0:
            raise ValidationError("Search radius must be positive", field="radius_km", radius_km=radius_km)
        if alert_type is not None and alert_type not in ALERT_TYPES:
            raise ValidationError(f"Unknown alert type: {alert_type}", field="alert_type")

        now = self.now()
        box = bounding_box(latitude, longitude, radius_km)
        stmt = select(EmergencyAlert).where(
            EmergencyAlert.status == "active",
            self._unexpired(now),
            EmergencyAlert.latitude.between(box.min_latitude, box.max_latitude),
            EmergencyAlert.longitude.between(box.min_longitude, box.max_longitude),
        )
        if alert_type is not None:
            stmt = stmt.where(EmergencyAlert.alert_type == alert_type)
        stmt = stmt.order_by(_URGENCY_RANK.desc(), EmergencyAlert.created_at.desc())
        with self._storage("find_nearby"):
            return list(self.db.execute(stmt).scalars().all())

    def find_by_type(self, alert_type: str) -> list[EmergencyAlert]:
        """Active alerts of one type, newest first."""
        if alert_type not in ALERT_TYPES:
            raise ValidationError(f"Unknown alert type: {alert_type}", field="alert_type")
        stmt = (
            select(EmergencyAlert)
            .where(EmergencyAlert.alert_type == alert_type, EmergencyAlert.status == "active")
            .order_by(EmergencyAlert.created_at.desc(), EmergencyAlert.id.desc())
        )
        with self._storage("find_by_type"):
            return list(self.db.execute(stmt).scalars().all())

    # ---------- mutations ----------

    def add_response(
        self,
        alert_id: int,
        user_id: int,
        response_type: str,
        message: str | None = None,
        location: ResponseLocation | None = None,
    ) -> EmergencyAlert:
        """Append a response and bump ``total_responses``."""
        if response_type not in RESPONSE_TYPES:
            raise ValidationError(f"Invalid response type: {response_type}", field="response_type")
        if message is not None and len(message) > MAX_RESPONSE_MESSAGE_LENGTH:
            raise ValidationError(
                f"Response message exceeds {MAX_RESPONSE_MESSAGE_LENGTH} characters", field="message"
            )

        alert = self.get(alert_id)
        now = self.now()
        alert.responses.append(
            AlertResponse(
                user_id=user_id,
                response_type=response_type,
                message=message,
                latitude=location.latitude if location else None,
                longitude=location.longitude if location else None,
                address=location.address if location else None,
                timestamp=now,
                is_verified=False,
            )
        )
        alert.total_responses = EmergencyAlert.total_responses + 1
        alert.updated_at = now
        return self._save(alert, "add_response")

    def _transition(self, alert_id: int, target: str) -> EmergencyAlert:
        alert = self.get(alert_id)
        if alert.status in TERMINAL_STATUSES:
            logger.debug("Alert %s already %s; ignoring transition to %s", alert_id, alert.status, target)
            return alert
        alert.status = target
        alert.updated_at = self.now()
        return self._save(alert, f"mark_{target}")

    def mark_resolved(self, alert_id: int) -> EmergencyAlert:
        return self._transition(alert_id, "resolved")

    def mark_cancelled(self, alert_id: int) -> EmergencyAlert:
        return self._transition(alert_id, "cancelled")

    def record_view(self, alert_id: int) -> EmergencyAlert:
        """Count one view. The increment runs in SQL so concurrent views all land."""
        alert = self.get(alert_id)
        alert.total_views = EmergencyAlert.total_views + 1
        alert.updated_at = self.now()
        return self._save(alert, "record_view")

    def update_propagation_stats(self, alert_id: int, stats: Mapping[str, int | None]) -> EmergencyAlert:
        """
        Overwrite counters with the cumulative totals given.

        Callers pass totals, not deltas. The UPDATE only matches while every
        stored counter is <= its new total, so a total below what any session
        has committed is rejected rather than written.
        """
        unknown = sorted(set(stats) - set(STAT_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown propagation stats: {', '.join(unknown)}", fields=unknown)
        updates = {k: v for k, v in stats.items() if v is not None}
        for field, value in updates.items():
            if not isinstance(value, int) or value < 0:
                raise ValidationError(f"{field} must be a non-negative integer", field=field)

        alert = self.get(alert_id)
        if not updates:
            return alert

        stmt = (
            update(EmergencyAlert)
            .where(
                EmergencyAlert.id == alert_id,
                *(getattr(EmergencyAlert, field) <= value for field, value in updates.items()),
            )
            .values(**updates, updated_at=self.now())
            .execution_options(synchronize_session=False)
        )
        with self._storage("update_propagation_stats"):
            matched = self.db.execute(stmt).rowcount
            if not matched:
                self.db.rollback()
                self.db.refresh(alert)
        if not matched:
            for field, value in updates.items():
                current = getattr(alert, field)
                if value < current:
                    raise ValidationError(
                        f"{field} cannot decrease ({current} -> {value})", field=field, current=current
                    )
            raise ValidationError("Propagation stats changed concurrently; retry", fields=sorted(updates))
        return self._save(alert, "update_propagation_stats")

    def extend_expiration(self, alert_id: int, hours: int) -> EmergencyAlert:
        """Push ``expires_at`` to now + hours. No-op for terminal alerts."""
        if not isinstance(hours, int) or not (MIN_EXTEND_HOURS <= hours <= MAX_EXTEND_HOURS):
            raise ValidationError(
                f"Extension must be {MIN_EXTEND_HOURS}-{MAX_EXTEND_HOURS} hours", field="hours", hours=hours
            )
        alert = self.get(alert_id)
        if alert.status in TERMINAL_STATUSES:
            logger.debug("Alert %s is %s; not extending", alert_id, alert.status)
            return alert
        now = self.now()
        alert.expires_at = now + timedelta(hours=hours)
        alert.updated_at = now
        return self._save(alert, "extend_expiration")

    def sweep_expired(self) -> int:
        """Mark active alerts past ``expires_at`` as expired. Returns how many."""
        now = self.now()
        stmt = select(EmergencyAlert).where(
            EmergencyAlert.status == "active",
            EmergencyAlert.expires_at.is_not(None),
            EmergencyAlert.expires_at <= now,
        )
        with self._storage("sweep_expired"):
            overdue = list(self.db.execute(stmt).scalars().all())
            for alert in overdue:
                alert.status = "expired"
                alert.updated_at = now
            self.db.commit()
        return len(overdue)

    def status_counts(self, since: datetime) -> dict[str, int]:
        """Totals by status plus alerts created since ``since``."""

        def _count(*criteria) -> int:
            stmt = select(func.count()).select_from(EmergencyAlert)
            if criteria:
                stmt = stmt.where(*criteria)
            return int(self.db.execute(stmt).scalar_one())

        with self._storage("status_counts"):
            return {
                "total": _count(),
                "active": _count(EmergencyAlert.status == "active"),
                "resolved": _count(EmergencyAlert.status == "resolved"),
                "since": _count(EmergencyAlert.created_at >= since),
            }
