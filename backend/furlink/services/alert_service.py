"""Emergency alert lifecycle: submit, respond, resolve, cancel, extend, list."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from furlink.core.alert_policies import MAX_RESPONSE_MESSAGE_LENGTH, RESPONSE_TYPES
from furlink.core.errors import ForbiddenError, NotFoundError, ValidationError
from furlink.models.emergency_alert import EmergencyAlert
from furlink.models.pet import Pet
from furlink.models.user import User
from furlink.schemas.alert import AlertCreate, ResponseLocation
from furlink.services.alert_store import AlertStore, validate_alert_input
from furlink.services.geo_service import haversine_km
from furlink.services.propagation import finalize_propagation

logger = logging.getLogger(__name__)


@dataclass
class RankedAlert:
    """Alert ranked for map / list display."""

    alert: EmergencyAlert
    urgency_score: float
    distance_km: float | None  # None when no centre point was given


@dataclass
class AlertStats:
    total: int
    active: int
    resolved: int
    today: int
    resolution_rate: float  # percent of all alerts that were resolved


def _require_user(store: AlertStore, user_id: int) -> User:
    user = store.db.get(User, user_id)
    if not user or not user.is_active:
        raise NotFoundError("User", user_id=user_id)
    return user


def _require_reporter(alert: EmergencyAlert, user_id: int, action: str) -> None:
    if alert.reporter_id != user_id:
        raise ForbiddenError(
            f"Only the reporter of this alert can {action} it", alert_id=alert.id, user_id=user_id
        )


def submit_alert(store: AlertStore, reporter_id: int, data: AlertCreate | Mapping[str, Any]) -> EmergencyAlert:
    """
    Validate and persist a new alert with finalized propagation settings.

    Any active user may report on any pet: found-pet reports come from
    people other than the owner.
    """
    if isinstance(data, AlertCreate):
        data = data.model_dump()
    alert_input = validate_alert_input({**data, "reporter_id": reporter_id})

    _require_user(store, reporter_id)
    if store.db.get(Pet, alert_input.pet_id) is None:
        raise NotFoundError("Pet", pet_id=alert_input.pet_id)

    settings = finalize_propagation(
        alert_input.propagation_settings,
        alert_input.urgency_level,
        alert_input.alert_type,
    )
    alert_input = alert_input.model_copy(update={"propagation_settings": settings.as_input()})
    alert = store.create(alert_input)
    logger.info(
        "Alert %s submitted by user %s: radius=%skm delay=%ss duration=%sh force=%s",
        alert.id, reporter_id, settings.propagation_radius, settings.propagation_delay,
        settings.propagation_duration, settings.force_propagation,
    )
    return alert


def record_response(
    store: AlertStore,
    alert_id: int,
    responder_id: int,
    response_type: str,
    message: str | None = None,
    location: ResponseLocation | None = None,
) -> EmergencyAlert:
    """Record a community response. A ``resolved`` response also resolves the alert."""
    if response_type not in RESPONSE_TYPES:
        raise ValidationError(f"Invalid response type: {response_type}", field="response_type")
    if message is not None and len(message) > MAX_RESPONSE_MESSAGE_LENGTH:
        raise ValidationError(
            f"Response message exceeds {MAX_RESPONSE_MESSAGE_LENGTH} characters", field="message"
        )
    store.get(alert_id)
    _require_user(store, responder_id)

    alert = store.add_response(alert_id, responder_id, response_type, message, location)
    logger.info("Alert %s: %s response from user %s", alert_id, response_type, responder_id)
    if response_type == "resolved":
        alert = store.mark_resolved(alert_id)
    return alert


def resolve_alert(store: AlertStore, alert_id: int, resolver_id: int) -> EmergencyAlert:
    """Resolve an alert. Resolving a terminal alert returns it unchanged."""
    before = store.get(alert_id).status
    alert = store.mark_resolved(alert_id)
    if before == "active":
        logger.info("Alert %s resolved by user %s", alert_id, resolver_id)
    return alert


def cancel_alert(store: AlertStore, alert_id: int, user_id: int) -> EmergencyAlert:
    """Cancel an alert. Only the reporter may cancel."""
    alert = store.get(alert_id)
    _require_reporter(alert, user_id, "cancel")
    before = alert.status
    alert = store.mark_cancelled(alert_id)
    if before == "active":
        logger.info("Alert %s cancelled by reporter %s", alert_id, user_id)
    return alert


def extend_alert(store: AlertStore, alert_id: int, user_id: int, hours: int) -> EmergencyAlert:
    """Push back automatic expiry. Only the reporter may extend."""
    alert = store.get(alert_id)
    _require_reporter(alert, user_id, "extend")
    alert = store.extend_expiration(alert_id, hours)
    logger.info("Alert %s extended by %sh (expires %s)", alert_id, hours, alert.expires_at)
    return alert


def view_alert(store: AlertStore, alert_id: int) -> EmergencyAlert:
    """Load an alert for display and count the view."""
    return store.record_view(alert_id)


def list_for_map(
    store: AlertStore,
    latitude: float | None = None,
    longitude: float | None = None,
    radius_km: float | None = None,
    alert_type: str | None = None,
) -> list[RankedAlert]:
    """
    Alerts for the map/list view, ranked by urgency score (desc), then distance (asc).

    With a centre point and radius the bounding-box search is used and each
    alert carries its haversine distance; otherwise all active alerts are listed.
    """
    now = store.now()
    centred = latitude is not None and longitude is not None
    if centred:
        if radius_km is None:
            raise ValidationError("radius_km is required with a centre point", field="radius_km")
        alerts = store.find_nearby(latitude, longitude, radius_km, alert_type)
    elif alert_type is not None:
        alerts = [a for a in store.find_by_type(alert_type) if a.is_active(now)]
    else:
        alerts = store.find_active()

    ranked = [
        RankedAlert(
            alert=a,
            urgency_score=a.urgency_score(now),
            distance_km=round(haversine_km(latitude, longitude, a.latitude, a.longitude), 2) if centred else None,
        )
        for a in alerts
    ]
    ranked.sort(key=lambda r: (-r.urgency_score, r.distance_km if r.distance_km is not None else 0.0))
    return ranked


def get_alert_stats(store: AlertStore) -> AlertStats:
    """Totals, today's count (since UTC midnight) and resolution rate."""
    midnight = store.now().replace(hour=0, minute=0, second=0, microsecond=0)
    counts = store.status_counts(since=midnight)
    total = counts["total"]
    return AlertStats(
        total=total,
        active=counts["active"],
        resolved=counts["resolved"],
        today=counts["since"],
        resolution_rate=round(counts["resolved"] / total * 100, 2) if total else 0.0,
    )


def expire_overdue(store: AlertStore) -> int:
    """Run the TTL sweep once."""
    count = store.sweep_expired()
    logger.info("Expired %s overdue alert(s)", count)
    return count
