"""
CommonRoom — Event Suggestion Engine for Shared-Living Communities
===================================================================
Seeds each community with rotating demonstration history the first time
it is observed, asks a generative text service for date-targeted event
ideas grounded in that history, caches the results, and carries each
suggestion through review, broadcast and implementation into a real event.

Package layout::

    commonroom/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Store keys, TTLs, fallback values
    ├── errors.py          # Typed, user-facing error taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # Community, Facility, Event, EventSuggestion …
    ├── engine/
    │   ├── clock.py       # Injectable time source
    │   ├── catalog.py     # Demonstration content catalog loader
    │   ├── targets.py     # Target dates + calendar context
    │   ├── prompts.py     # Completion prompt builder
    │   ├── parsing.py     # Response extraction, validation, fallback
    │   └── lifecycle.py   # Suggestion status transition table
    ├── seeds/
    │   └── demo_catalog.yaml
    ├── services/
    │   ├── rotation_store.py      # Redis: counter, markers, cache, broadcasts
    │   ├── completion_client.py   # OpenAI-compatible completion wrapper
    │   ├── broadcast_dispatcher.py
    │   ├── access.py              # Owner / resident checks
    │   ├── seeding_service.py     # Demonstration content injection
    │   ├── suggestion_generator.py
    │   └── suggestion_service.py  # Cache + lifecycle orchestration
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # JWT principal + service wiring
        └── routes/        # Suggestion + seeding endpoints
"""

__version__ = "0.1.0"
