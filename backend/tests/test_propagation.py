"""Propagation policy tests."""

import logging

from furlink.schemas.alert import PropagationSettingsIn
from furlink.services.propagation import clamp, finalize_propagation, is_priority_alert


def test_defaults_when_nothing_requested():
    s = finalize_propagation(None, "medium", "lost_pet")
    assert s.force_propagation is True
    assert s.propagation_radius == 5.0
    assert s.propagation_delay == 0
    assert s.propagation_duration == 24


def test_caller_values_win():
    s = finalize_propagation(
        PropagationSettingsIn(propagation_radius=12, propagation_delay=300, propagation_duration=72, force_propagation=False),
        "low",
        "found_pet",
    )
    assert (s.propagation_radius, s.propagation_delay, s.propagation_duration, s.force_propagation) == (
        12.0,
        300,
        72,
        False,
    )


def test_partial_request_fills_remaining_defaults():
    s = finalize_propagation(PropagationSettingsIn(propagation_radius=20), "medium", "lost_pet")
    assert s.propagation_radius == 20.0
    assert s.propagation_duration == 24
    assert s.force_propagation is True


def test_out_of_range_values_are_clamped():
    # model_construct skips field validation, as a caller bypassing the schema would
    req = PropagationSettingsIn.model_construct(
        propagation_radius=500.0, propagation_delay=-5, propagation_duration=1000, force_propagation=None
    )
    s = finalize_propagation(req, "medium", "lost_pet")
    assert s.propagation_radius == 50.0
    assert s.propagation_delay == 0
    assert s.propagation_duration == 168


def test_priority_alert_keeps_caller_delay_and_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="furlink.services.propagation"):
        s = finalize_propagation(PropagationSettingsIn(propagation_delay=60), "critical", "medical_emergency")
    assert s.propagation_delay == 60
    assert "Priority alert" in caplog.text


def test_non_priority_alert_does_not_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="furlink.services.propagation"):
        finalize_propagation(PropagationSettingsIn(propagation_delay=60), "low", "lost_pet")
    assert caplog.text == ""


def test_is_priority_alert():
    assert is_priority_alert("high", "lost_pet")
    assert is_priority_alert("low", "accident")
    assert not is_priority_alert("medium", "found_pet")


def test_clamp():
    assert clamp(0.2, 1, 50) == 1
    assert clamp(75, 1, 50) == 50
    assert clamp(10, 1, 50) == 10
