"""Propagation policy: radius, delay, duration and force flag for fan-out.

The notification service performs the actual push; this module only decides
the parameters it receives.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from furlink.core.alert_policies import (
    DEFAULT_FORCE_PROPAGATION,
    DEFAULT_PROPAGATION_DELAY_S,
    DEFAULT_PROPAGATION_DURATION_H,
    DEFAULT_PROPAGATION_RADIUS_KM,
    MAX_PROPAGATION_DELAY_S,
    MAX_PROPAGATION_DURATION_H,
    MAX_PROPAGATION_RADIUS_KM,
    MIN_PROPAGATION_DELAY_S,
    MIN_PROPAGATION_DURATION_H,
    MIN_PROPAGATION_RADIUS_KM,
    PRIORITY_ALERT_TYPES,
    PRIORITY_URGENCY_LEVELS,
)
from furlink.schemas.alert import PropagationSettingsIn

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropagationSettings:
    force_propagation: bool
    propagation_radius: float  # km
    propagation_delay: int  # seconds
    propagation_duration: int  # hours

    def as_input(self) -> PropagationSettingsIn:
        return PropagationSettingsIn(
            force_propagation=self.force_propagation,
            propagation_radius=self.propagation_radius,
            propagation_delay=self.propagation_delay,
            propagation_duration=self.propagation_duration,
        )


def clamp(value, low, high):
    return max(low, min(high, value))


def is_priority_alert(urgency_level: str, alert_type: str) -> bool:
    """High/critical urgency or a medical/accident/disaster alert."""
    return urgency_level in PRIORITY_URGENCY_LEVELS or alert_type in PRIORITY_ALERT_TYPES


def finalize_propagation(
    requested: PropagationSettingsIn | None,
    urgency_level: str,
    alert_type: str,
) -> PropagationSettings:
    """
    Fill defaults for unset fields and clamp everything into range.

    Caller-supplied delay and force flag are kept as given, even for
    priority alerts; those only get a warning when they would slow fan-out.
    """
    req = requested or PropagationSettingsIn()

    force = DEFAULT_FORCE_PROPAGATION if req.force_propagation is None else req.force_propagation
    radius = DEFAULT_PROPAGATION_RADIUS_KM if req.propagation_radius is None else req.propagation_radius
    delay = DEFAULT_PROPAGATION_DELAY_S if req.propagation_delay is None else req.propagation_delay
    duration = DEFAULT_PROPAGATION_DURATION_H if req.propagation_duration is None else req.propagation_duration

    settings = PropagationSettings(
        force_propagation=bool(force),
        propagation_radius=float(clamp(radius, MIN_PROPAGATION_RADIUS_KM, MAX_PROPAGATION_RADIUS_KM)),
        propagation_delay=int(clamp(delay, MIN_PROPAGATION_DELAY_S, MAX_PROPAGATION_DELAY_S)),
        propagation_duration=int(clamp(duration, MIN_PROPAGATION_DURATION_H, MAX_PROPAGATION_DURATION_H)),
    )

    if is_priority_alert(urgency_level, alert_type) and (
        settings.propagation_delay > 0 or not settings.force_propagation
    ):
        logger.warning(
            "Priority alert (%s/%s) propagates with delay=%ss force=%s",
            alert_type, urgency_level, settings.propagation_delay, settings.force_propagation,
        )
    return settings
