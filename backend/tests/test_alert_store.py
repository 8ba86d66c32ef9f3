"""Alert store tests: persistence, ordering, nearby search, counters, expiry."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from conftest import T0, alert_payload
from furlink.core.clock import as_utc
from furlink.core.errors import NotFoundError, StorageError, ValidationError
from furlink.schemas.alert import ResponseLocation
from furlink.services.alert_store import AlertStore, validate_alert_input


def _create(store, pet, owner, **overrides):
    return store.create({**alert_payload(pet.id, **overrides), "reporter_id": owner.id})


def test_create_then_get_returns_stored_alert(store, pet, owner):
    created = _create(store, pet, owner)

    alert = store.get(created.id)
    assert alert.title == "Lost Golden Retriever"
    assert alert.alert_type == "lost_pet"
    assert alert.reporter_id == owner.id
    assert alert.status == "active"
    assert as_utc(alert.report_time) == T0
    assert as_utc(alert.expires_at) == as_utc(alert.report_time) + timedelta(hours=24)
    assert alert.propagation_radius_km == 5.0
    assert alert.propagation_delay_seconds == 0
    assert alert.force_propagation is True
    assert (alert.total_reached, alert.total_views, alert.total_shares, alert.total_responses) == (0, 0, 0, 0)


def test_create_stores_attachments_and_contact(store, pet, owner):
    alert = _create(
        store,
        pet,
        owner,
        attachments=[{"type": "photo", "url": "https://cdn.example/buddy.jpg"}],
        contact_info={"name": "Lin", "phone": "13800000000", "preferred_contact": "phone"},
    )
    assert [a.url for a in alert.attachments] == ["https://cdn.example/buddy.jpg"]
    assert alert.contact_info == {"name": "Lin", "phone": "13800000000", "preferred_contact": "phone"}


def test_custom_duration_sets_expiry(store, pet, owner):
    alert = _create(store, pet, owner, propagation_settings={"propagation_duration": 48})
    assert as_utc(alert.expires_at) == T0 + timedelta(hours=48)


@pytest.mark.parametrize("radius", [0.5, 51])
def test_radius_out_of_range_rejected(store, pet, owner, radius):
    with pytest.raises(ValidationError):
        _create(store, pet, owner, propagation_settings={"propagation_radius": radius})


def test_title_too_long_rejected(store, pet, owner):
    with pytest.raises(ValidationError) as exc:
        _create(store, pet, owner, title="x" * 101)
    assert exc.value.details["field"] == "title"


def test_validate_alert_input_reports_missing_fields():
    with pytest.raises(ValidationError) as exc:
        validate_alert_input({"alert_type": "lost_pet"})
    fields = {e["field"] for e in exc.value.details["errors"]}
    assert {"pet_id", "title", "description", "location", "incident_time", "reporter_id"} <= fields


def test_unknown_alert_type_rejected(store, pet, owner):
    with pytest.raises(ValidationError):
        _create(store, pet, owner, alert_type="stolen_bike")


def test_get_missing_alert_raises_not_found(store):
    with pytest.raises(NotFoundError) as exc:
        store.get(999)
    assert exc.value.details == {"resource": "Alert", "alert_id": 999}


def test_find_active_orders_by_urgency_then_newest(store, pet, owner, clock):
    critical = _create(store, pet, owner, urgency_level="critical", title="Hit by car")
    clock.advance(minutes=59)
    low = _create(store, pet, owner, urgency_level="low", title="Wandered off")
    clock.advance(minutes=1)
    medium_old = _create(store, pet, owner, urgency_level="medium", title="Older medium")
    clock.advance(minutes=1)
    medium_new = _create(store, pet, owner, urgency_level="medium", title="Newer medium")

    ids = [a.id for a in store.find_active()]
    assert ids == [critical.id, medium_new.id, medium_old.id, low.id]


def test_find_active_limit(store, pet, owner):
    for _ in range(3):
        _create(store, pet, owner)
    assert len(store.find_active(limit=2)) == 2


def test_find_active_excludes_terminal_and_expired(store, pet, owner, clock):
    resolved = _create(store, pet, owner)
    store.mark_resolved(resolved.id)
    short = _create(store, pet, owner, propagation_settings={"propagation_duration": 1})
    keep = _create(store, pet, owner)

    clock.advance(hours=1, seconds=1)
    ids = [a.id for a in store.find_active()]
    assert ids == [keep.id]
    assert short.id not in ids


def test_find_nearby_bounding_box(store, pet, owner):
    alert = _create(store, pet, owner, location={"latitude": 39.90, "longitude": 116.40})

    assert [a.id for a in store.find_nearby(39.91, 116.41, 10)] == [alert.id]
    assert store.find_nearby(10.0, 10.0, 5) == []


def test_find_nearby_filters_type(store, pet, owner):
    _create(store, pet, owner, location={"latitude": 39.90, "longitude": 116.40})
    medical = _create(
        store, pet, owner, alert_type="medical_emergency", location={"latitude": 39.90, "longitude": 116.40}
    )
    assert [a.id for a in store.find_nearby(39.90, 116.40, 5, "medical_emergency")] == [medical.id]


def test_find_nearby_rejects_bad_radius(store):
    with pytest.raises(ValidationError):
        store.find_nearby(39.9, 116.4, 0)


def test_find_by_type_newest_first_active_only(store, pet, owner, clock):
    first = _create(store, pet, owner)
    clock.advance(minutes=5)
    second = _create(store, pet, owner)
    clock.advance(minutes=5)
    gone = _create(store, pet, owner)
    store.mark_cancelled(gone.id)
    _create(store, pet, owner, alert_type="found_pet")

    assert [a.id for a in store.find_by_type("lost_pet")] == [second.id, first.id]


def test_responses_accumulate(store, pet, owner, neighbour):
    alert = _create(store, pet, owner)
    n = 4
    for i in range(n):
        alert = store.add_response(
            alert.id,
            neighbour.id,
            "sighting",
            f"Seen near gate {i}",
            ResponseLocation(latitude=39.905, longitude=116.41),
        )

    assert alert.total_responses == n
    assert len(alert.responses) == n
    assert [r.message for r in alert.responses] == [f"Seen near gate {i}" for i in range(n)]
    assert alert.responses[0].latitude == 39.905


def test_response_message_limit(store, pet, owner, neighbour):
    alert = _create(store, pet, owner)
    with pytest.raises(ValidationError):
        store.add_response(alert.id, neighbour.id, "information", "x" * 501)


def test_response_unknown_type(store, pet, owner, neighbour):
    alert = _create(store, pet, owner)
    with pytest.raises(ValidationError):
        store.add_response(alert.id, neighbour.id, "applause")


def test_mark_resolved_is_terminal(store, pet, owner):
    alert = _create(store, pet, owner)
    assert store.mark_resolved(alert.id).status == "resolved"
    assert store.mark_cancelled(alert.id).status == "resolved"
    assert store.mark_resolved(alert.id).status == "resolved"


def test_update_propagation_stats_is_cumulative(store, pet, owner):
    alert = _create(store, pet, owner)
    store.update_propagation_stats(alert.id, {"total_reached": 120, "total_shares": 4})
    alert = store.update_propagation_stats(alert.id, {"total_reached": 150})

    assert alert.total_reached == 150
    assert alert.total_shares == 4


def test_update_propagation_stats_rejects_decrease(store, pet, owner):
    alert = _create(store, pet, owner)
    store.update_propagation_stats(alert.id, {"total_views": 10})
    with pytest.raises(ValidationError):
        store.update_propagation_stats(alert.id, {"total_views": 9})


def test_update_propagation_stats_rejects_unknown_field(store, pet, owner):
    alert = _create(store, pet, owner)
    with pytest.raises(ValidationError):
        store.update_propagation_stats(alert.id, {"total_likes": 3})


def test_extend_expiration(store, pet, owner, clock):
    alert = _create(store, pet, owner)
    clock.advance(hours=20)
    alert = store.extend_expiration(alert.id, 12)
    assert as_utc(alert.expires_at) == T0 + timedelta(hours=32)


@pytest.mark.parametrize("hours", [0, 169])
def test_extend_expiration_bounds(store, pet, owner, hours):
    alert = _create(store, pet, owner)
    with pytest.raises(ValidationError):
        store.extend_expiration(alert.id, hours)


def test_extend_terminal_alert_is_noop(store, pet, owner):
    alert = _create(store, pet, owner)
    store.mark_cancelled(alert.id)
    alert = store.extend_expiration(alert.id, 12)
    assert as_utc(alert.expires_at) == T0 + timedelta(hours=24)


def test_alert_inactive_after_duration(store, pet, owner, clock):
    alert = _create(store, pet, owner, propagation_settings={"propagation_duration": 1})
    assert alert.is_active(clock())

    clock.advance(minutes=59)
    assert alert.is_active(clock())
    clock.advance(minutes=1)
    assert not alert.is_active(clock())


def test_sweep_expired_marks_overdue_only(store, pet, owner, clock):
    short = _create(store, pet, owner, propagation_settings={"propagation_duration": 1})
    long = _create(store, pet, owner, propagation_settings={"propagation_duration": 48})

    clock.advance(hours=2)
    assert store.sweep_expired() == 1
    assert store.get(short.id).status == "expired"
    assert store.get(long.id).status == "active"
    assert store.sweep_expired() == 0


def test_status_counts(store, pet, owner, clock):
    a = _create(store, pet, owner)
    _create(store, pet, owner)
    store.mark_resolved(a.id)
    counts = store.status_counts(since=T0)
    assert counts == {"total": 2, "active": 1, "resolved": 1, "since": 2}


def test_views_from_two_sessions_both_count(store, session_factory, clock, pet, owner):
    alert = _create(store, pet, owner)
    other_db = session_factory()
    try:
        other = AlertStore(other_db, clock=clock)
        other.get(alert.id)  # both sessions now hold the row with total_views == 0

        store.record_view(alert.id)
        assert other.record_view(alert.id).total_views == 2
    finally:
        other_db.close()
    store.db.refresh(alert)
    assert alert.total_views == 2


def test_view_after_concurrent_stats_update_keeps_total(store, session_factory, clock, pet, owner):
    alert = _create(store, pet, owner)
    other_db = session_factory()
    try:
        AlertStore(other_db, clock=clock).update_propagation_stats(alert.id, {"total_views": 100})
    finally:
        other_db.close()

    # this session still holds total_views == 0
    assert store.record_view(alert.id).total_views == 101


def test_stale_total_rejected_after_concurrent_update(store, session_factory, clock, pet, owner):
    alert = _create(store, pet, owner)
    other_db = session_factory()
    try:
        AlertStore(other_db, clock=clock).update_propagation_stats(alert.id, {"total_reached": 100})
    finally:
        other_db.close()

    with pytest.raises(ValidationError) as exc:
        store.update_propagation_stats(alert.id, {"total_reached": 50})
    assert exc.value.details["field"] == "total_reached"
    assert exc.value.details["current"] == 100
    store.db.refresh(alert)
    assert alert.total_reached == 100


def test_commit_failure_raises_storage_error_and_rolls_back(store, db, pet, owner, monkeypatch):
    rollbacks = []
    real_rollback = db.rollback

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    def tracking_rollback():
        rollbacks.append(True)
        real_rollback()

    monkeypatch.setattr(db, "commit", failing_commit)
    monkeypatch.setattr(db, "rollback", tracking_rollback)

    with pytest.raises(StorageError) as exc:
        _create(store, pet, owner)
    assert exc.value.status_code == 503
    assert exc.value.details == {"operation": "create"}
    assert rollbacks == [True]

    monkeypatch.undo()
    assert store.find_active() == []
