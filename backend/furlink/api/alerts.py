"""Emergency alerts API."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from furlink.core.alert_policies import DEFAULT_NEARBY_RADIUS_KM
from furlink.core.clock import as_utc
from furlink.core.deps import get_alert_store, get_current_user, require_platform_key
from furlink.models.emergency_alert import EmergencyAlert
from furlink.models.user import User
from furlink.schemas.alert import (
    AlertCreate,
    AlertOut,
    AlertResponseCreate,
    AlertResponseOut,
    AlertStatsOut,
    AlertType,
    AttachmentOut,
    ContactInfo,
    ExtendRequest,
    Location,
    PropagationSettingsOut,
    PropagationStatsOut,
    PropagationStatsUpdate,
    ResponseLocation,
    SweepResult,
)
from furlink.services.alert_service import (
    cancel_alert,
    expire_overdue,
    extend_alert,
    get_alert_stats,
    list_for_map,
    record_response,
    resolve_alert,
    submit_alert,
    view_alert,
)
from furlink.services.alert_store import AlertStore

router = APIRouter(prefix="/emergency", tags=["emergency"])


def _to_alert_out(alert: EmergencyAlert, now: datetime, distance_km: float | None = None) -> AlertOut:
    """Flatten the ORM row into the wire shape, with derived values at ``now``."""
    responses = [
        AlertResponseOut(
            id=r.id,
            user_id=r.user_id,
            response_type=r.response_type,
            message=r.message,
            location=(
                ResponseLocation(latitude=r.latitude, longitude=r.longitude, address=r.address)
                if r.latitude is not None and r.longitude is not None
                else None
            ),
            timestamp=as_utc(r.timestamp),
            is_verified=r.is_verified,
        )
        for r in alert.responses
    ]
    attachments = [
        AttachmentOut(
            id=a.id,
            type=a.type,
            url=a.url,
            thumbnail=a.thumbnail,
            description=a.description,
            uploaded_at=as_utc(a.uploaded_at),
        )
        for a in alert.attachments
    ]
    return AlertOut(
        id=alert.id,
        alert_type=alert.alert_type,
        pet_id=alert.pet_id,
        reporter_id=alert.reporter_id,
        title=alert.title,
        description=alert.description,
        location=Location(
            latitude=alert.latitude,
            longitude=alert.longitude,
            address=alert.address,
            accuracy=alert.location_accuracy,
        ),
        incident_time=as_utc(alert.incident_time),
        report_time=as_utc(alert.report_time),
        urgency_level=alert.urgency_level,
        status=alert.status,
        attachments=attachments,
        contact_info=ContactInfo(**alert.contact_info) if alert.contact_info else None,
        propagation_settings=PropagationSettingsOut(
            force_propagation=alert.force_propagation,
            propagation_radius=alert.propagation_radius_km,
            propagation_delay=alert.propagation_delay_seconds,
            propagation_duration=alert.propagation_duration_hours,
        ),
        responses=responses,
        propagation_stats=PropagationStatsOut(
            total_reached=alert.total_reached,
            total_views=alert.total_views,
            total_shares=alert.total_shares,
            total_responses=alert.total_responses,
        ),
        expires_at=as_utc(alert.expires_at),
        created_at=as_utc(alert.created_at),
        updated_at=as_utc(alert.updated_at),
        is_active=alert.is_active(now),
        time_since_incident_seconds=alert.time_since_incident(now).total_seconds(),
        urgency_score=round(alert.urgency_score(now), 4),
        distance_km=distance_km,
    )


@router.post("/alerts", response_model=AlertOut, status_code=status.HTTP_201_CREATED)
def create_alert(
    data: AlertCreate,
    store: AlertStore = Depends(get_alert_store),
    current_user: User = Depends(get_current_user),
):
    """Submit an emergency alert. The caller is the reporter."""
    alert = submit_alert(store, current_user.id, data)
    return _to_alert_out(alert, store.now())


@router.get("/alerts/active", response_model=list[AlertOut])
def list_active(
    store: AlertStore = Depends(get_alert_store),
    current_user: User = Depends(get_current_user),
):
    """All active alerts, most urgent first."""
    ranked = list_for_map(store)
    now = store.now()
    return [_to_alert_out(r.alert, now) for r in ranked]


@router.get("/alerts/nearby", response_model=list[AlertOut])
def list_nearby(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(default=DEFAULT_NEARBY_RADIUS_KM, ge=1, le=50),
    alert_type: AlertType | None = Query(default=None),
    store: AlertStore = Depends(get_alert_store),
    current_user: User = Depends(get_current_user),
):
    """Active alerts around a point, ranked by urgency score then distance."""
    ranked = list_for_map(store, latitude, longitude, radius_km, alert_type)
    now = store.now()
    return [_to_alert_out(r.alert, now, r.distance_km) for r in ranked]


@router.get("/alerts/type/{alert_type}", response_model=list[AlertOut])
def list_by_type(
    alert_type: AlertType,
    store: AlertStore = Depends(get_alert_store),
    current_user: User = Depends(get_current_user),
):
    """Active alerts of one type, newest first."""
    now = store.now()
    return [_to_alert_out(a, now) for a in store.find_by_type(alert_type)]


@router.get("/stats", response_model=AlertStatsOut)
def alert_stats(
    store: AlertStore = Depends(get_alert_store),
    current_user: User = Depends(get_current_user),
):
    """Alert totals and resolution rate."""
    stats = get_alert_stats(store)
    return AlertStatsOut(
        total=stats.total,
        active=stats.active,
        resolved=stats.resolved,
        today=stats.today,
        resolution_rate=stats.resolution_rate,
    )


@router.post("/maintenance/expire", response_model=SweepResult)
def run_expiry_sweep(
    store: AlertStore = Depends(get_alert_store),
    _: None = Depends(require_platform_key),
):
    """Mark overdue active alerts as expired. Called by the platform scheduler."""
    return SweepResult(expired=expire_overdue(store))


@router.get("/alerts/{alert_id}", response_model=AlertOut)
def get_alert(
    alert_id: int,
    store: AlertStore = Depends(get_alert_store),
    current_user: User = Depends(get_current_user),
):
    """Alert detail. Counts as a view."""
    alert = view_alert(store, alert_id)
    return _to_alert_out(alert, store.now())


@router.post("/alerts/{alert_id}/responses", response_model=AlertOut)
def respond_to_alert(
    alert_id: int,
    data: AlertResponseCreate,
    store: AlertStore = Depends(get_alert_store),
    current_user: User = Depends(get_current_user),
):
    """Report a sighting, offer help, share information, or report the pet found."""
    alert = record_response(
        store,
        alert_id,
        current_user.id,
        data.response_type,
        data.message,
        data.location,
    )
    return _to_alert_out(alert, store.now())


@router.post("/alerts/{alert_id}/resolve", response_model=AlertOut)
def resolve(
    alert_id: int,
    store: AlertStore = Depends(get_alert_store),
    current_user: User = Depends(get_current_user),
):
    """Resolve an alert. Idempotent."""
    alert = resolve_alert(store, alert_id, current_user.id)
    return _to_alert_out(alert, store.now())


@router.post("/alerts/{alert_id}/cancel", response_model=AlertOut)
def cancel(
    alert_id: int,
    store: AlertStore = Depends(get_alert_store),
    current_user: User = Depends(get_current_user),
):
    """Cancel an alert. Only the reporter can cancel."""
    alert = cancel_alert(store, alert_id, current_user.id)
    return _to_alert_out(alert, store.now())


@router.post("/alerts/{alert_id}/extend", response_model=AlertOut)
def extend(
    alert_id: int,
    data: ExtendRequest,
    store: AlertStore = Depends(get_alert_store),
    current_user: User = Depends(get_current_user),
):
    """Push back automatic expiry by 1-168 hours. Only the reporter can extend."""
    alert = extend_alert(store, alert_id, current_user.id, data.hours)
    return _to_alert_out(alert, store.now())


@router.patch("/alerts/{alert_id}/stats", response_model=AlertOut)
def update_stats(
    alert_id: int,
    data: PropagationStatsUpdate,
    store: AlertStore = Depends(get_alert_store),
    _: None = Depends(require_platform_key),
):
    """Record cumulative propagation totals reported by the notification service."""
    alert = store.update_propagation_stats(alert_id, data.model_dump(exclude_none=True))
    return _to_alert_out(alert, store.now())
