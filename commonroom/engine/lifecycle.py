"""
commonroom.engine.lifecycle — Suggestion Status Transitions
=============================================================

::

    PENDING ──► APPROVED ──► IMPLEMENTED
       │   └──────────────────►  ▲
       │            │
       ├──► REJECTED◄┘
       └──► EXPIRED (also from APPROVED / REJECTED)

IMPLEMENTED and EXPIRED are terminal.  Broadcasting is not a transition.
"""

from __future__ import annotations

from commonroom.database.models import SuggestionStatus

S = SuggestionStatus

ALLOWED_TRANSITIONS: dict[SuggestionStatus, frozenset[SuggestionStatus]] = {
    S.PENDING: frozenset({S.APPROVED, S.REJECTED, S.IMPLEMENTED, S.EXPIRED}),
    S.APPROVED: frozenset({S.REJECTED, S.IMPLEMENTED, S.EXPIRED}),
    S.REJECTED: frozenset({S.EXPIRED}),
    S.IMPLEMENTED: frozenset(),
    S.EXPIRED: frozenset(),
}

# Statuses an owner may set by hand through the review endpoint
REVIEWABLE_STATUSES: frozenset[SuggestionStatus] = frozenset({S.APPROVED, S.REJECTED})

# Statuses the expiry sweep touches
EXPIRABLE_STATUSES: frozenset[SuggestionStatus] = frozenset({S.PENDING, S.APPROVED})


def can_transition(current: SuggestionStatus, target: SuggestionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())
