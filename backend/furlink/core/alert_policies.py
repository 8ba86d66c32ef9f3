"""Emergency alert policy constants."""

from __future__ import annotations

ALERT_TYPES = ("lost_pet", "found_pet", "medical_emergency", "accident", "natural_disaster")
RESPONSE_TYPES = ("sighting", "help_offered", "information", "resolved")

# Terminal statuses: no transition leaves them
TERMINAL_STATUSES = ("resolved", "cancelled", "expired")

# Base urgency weight used for ordering and the urgency score
URGENCY_WEIGHTS = {"low": 1, "medium": 2, "high": 3, "critical": 4}

# Alert types that should propagate immediately and forcibly
PRIORITY_ALERT_TYPES = ("medical_emergency", "accident", "natural_disaster")
PRIORITY_URGENCY_LEVELS = ("high", "critical")

# Propagation defaults and bounds
DEFAULT_FORCE_PROPAGATION = True
DEFAULT_PROPAGATION_RADIUS_KM = 5.0
MIN_PROPAGATION_RADIUS_KM = 1.0
MAX_PROPAGATION_RADIUS_KM = 50.0
DEFAULT_PROPAGATION_DELAY_S = 0
MIN_PROPAGATION_DELAY_S = 0
MAX_PROPAGATION_DELAY_S = 3600
DEFAULT_PROPAGATION_DURATION_H = 24
MIN_PROPAGATION_DURATION_H = 1
MAX_PROPAGATION_DURATION_H = 168

# Expiration extension bounds in hours
MIN_EXTEND_HOURS = 1
MAX_EXTEND_HOURS = 168

# Field limits
MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 1000
MAX_RESPONSE_MESSAGE_LENGTH = 500

# Default search radius for nearby listings in kilometers
DEFAULT_NEARBY_RADIUS_KM = 10.0

# Kilometers per degree of latitude used by the bounding-box search
KM_PER_DEGREE = 111.0

STAT_FIELDS = ("total_reached", "total_views", "total_shares", "total_responses")
