"""
commonroom.constants — Shared Constants
=========================================

Single source of truth for rotation-store key namespaces, expiry windows
and the deterministic fallback suggestion.  Import from here instead of
duplicating literals in services and routes.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Rotation store keys
# ---------------------------------------------------------------------------
ROTATION_COUNTER_KEY = "community:last_assigned_demo_set"
SEEDING_MARKER_PREFIX = "community:demo_seeding:"
SEEDING_LOCK_PREFIX = "community:demo_seeding_lock:"
SUGGESTION_CACHE_PREFIX = "community:suggestions:"
BROADCAST_PREFIX = "broadcast:"

# ---------------------------------------------------------------------------
# Expiry windows (seconds)
# ---------------------------------------------------------------------------
SUGGESTION_CACHE_TTL = 6 * 3600
BROADCAST_TTL = 7 * 24 * 3600
SEEDING_LOCK_TTL = 120
SEEDING_LOCK_WAIT = 10.0

# ---------------------------------------------------------------------------
# Completion service
# ---------------------------------------------------------------------------
DEFAULT_COMPLETION_MODEL = "gemini-2.0-flash-exp"
DEFAULT_COMPLETION_TIMEOUT = 30.0
DEFAULT_COMPLETION_MAX_RETRIES = 1
DEFAULT_GENERATION_BUDGET = 90.0

# ---------------------------------------------------------------------------
# History windows
# ---------------------------------------------------------------------------
HISTORY_LIMIT = 10        # past events loaded per generation
PROMPT_HISTORY_LIMIT = 3  # past events quoted in the prompt

# ---------------------------------------------------------------------------
# Fallback suggestion — used when the completion text cannot be parsed
# ---------------------------------------------------------------------------
FALLBACK_ENGAGEMENT = 75.0
FALLBACK_CAPACITY = 50
FALLBACK_COST = 2000.0
FALLBACK_FACILITIES: tuple[str, ...] = ("Common Room",)
DEFAULT_DURATION_MINUTES = 180

# Upper bounds on completion fields; they mirror the column sizes in
# database/models.py so an accepted reply always persists
MAX_TITLE_LENGTH = 300
MAX_LOCATION_LENGTH = 300
MAX_DURATION_MINUTES = 3 * 24 * 60
MAX_RECOMMENDED_CAPACITY = 10_000
MAX_ESTIMATED_COST = 100_000_000.0

# ---------------------------------------------------------------------------
# Broadcast
# ---------------------------------------------------------------------------
BROADCAST_CHANNELS: frozenset[str] = frozenset({"email", "push", "sms"})
DEFAULT_BROADCAST_CHANNELS: tuple[str, ...] = ("email",)
MAX_BROADCAST_MESSAGE_LENGTH = 1000
BROADCAST_EMOJI = "\U0001f389"  # 🎉

# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------
MAX_FEEDBACK_LENGTH = 500
MIN_OWNER_RATING = 1
MAX_OWNER_RATING = 5

# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------
DEFAULT_LIST_LIMIT = 10
MAX_LIST_LIMIT = 100

# Presentation-only metrics derived from a seeded event's engagement score
PHOTOS_PER_ENGAGEMENT_POINT = 1 / 2
MENTIONS_PER_ENGAGEMENT_POINT = 1 / 4
SEEDED_IMPROVEMENT_AREAS: tuple[str, ...] = (
    "Better time management",
    "More variety in activities",
)
