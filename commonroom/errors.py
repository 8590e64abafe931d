"""
commonroom.errors — Typed Error Taxonomy
==========================================

Services raise these; the API layer renders them with the class-level
``status_code``.  Messages are user-facing and kept stable.

``MalformedUpstreamResponse`` never leaves the suggestion generator — it
is always recovered with the deterministic fallback suggestion.
"""

from __future__ import annotations


class CommonRoomError(Exception):
    """Base class for every error the suggestion engine raises on purpose."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(CommonRoomError):
    status_code = 404


class ForbiddenError(CommonRoomError):
    status_code = 403


class ValidationFailure(CommonRoomError):
    status_code = 400


class UpstreamUnavailable(CommonRoomError):
    """The completion service is unreachable, misconfigured or too slow."""

    status_code = 503


class MalformedUpstreamResponse(CommonRoomError):
    """The completion text held no usable suggestion object."""

    status_code = 502


class SeedingError(CommonRoomError):
    """Demonstration content could not be injected; safe to retry."""

    status_code = 500
