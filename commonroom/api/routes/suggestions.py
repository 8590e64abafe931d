"""
commonroom.api.routes.suggestions — Event Suggestion Endpoints
================================================================

Bearer-JWT routes over :class:`SuggestionService`:
    - Target dates listing
    - Generate / read the cached batch
    - Ranked listing with optional auto-generation
    - Seeding info, clear, force re-seed
    - Broadcast, review, implement, expire

Every response uses the ``{"success", "message", "data"}`` envelope;
service errors are rendered by the app-level exception handler.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from commonroom import constants
from commonroom.api.deps import get_principal, get_suggestion_service
from commonroom.database.models import SuggestionStatus
from commonroom.services.access import Principal
from commonroom.services.suggestion_service import SuggestionService

router = APIRouter(tags=["suggestions"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class Envelope(BaseModel):
    success: bool = True
    message: str
    data: Any = None
    total: int | None = None


class GenerateRequest(BaseModel):
    force_fresh: bool = False


class BroadcastRequestBody(BaseModel):
    message: str | None = Field(
        default=None, max_length=constants.MAX_BROADCAST_MESSAGE_LENGTH
    )
    schedule_for: datetime | None = None
    channels: list[str] | None = Field(default=None, min_length=1)


class ReviewRequest(BaseModel):
    status: SuggestionStatus
    owner_feedback: str | None = Field(
        default=None, max_length=constants.MAX_FEEDBACK_LENGTH
    )
    owner_rating: int | None = Field(
        default=None,
        ge=constants.MIN_OWNER_RATING,
        le=constants.MAX_OWNER_RATING,
    )


class ImplementRequest(BaseModel):
    start_date: datetime | None = None
    end_date: datetime | None = None
    max_capacity: int | None = Field(
        default=None, ge=1, le=constants.MAX_RECOMMENDED_CAPACITY
    )
    estimated_cost: float | None = Field(
        default=None, ge=0, le=constants.MAX_ESTIMATED_COST
    )
    facility_id: str | None = None


# =========================================================================
# Target dates
# =========================================================================
@router.get("/suggestions/target-dates", response_model=Envelope)
def list_target_dates(
    principal: Principal = Depends(get_principal),  # noqa: ARG001
    service: SuggestionService = Depends(get_suggestion_service),
):
    return Envelope(
        message="Target dates retrieved successfully", data=service.target_dates()
    )


# =========================================================================
# Per-community
# =========================================================================
@router.post("/communities/{community_id}/suggestions/generate", response_model=Envelope)
def generate_suggestions(
    community_id: str,
    body: GenerateRequest | None = None,
    principal: Principal = Depends(get_principal),
    service: SuggestionService = Depends(get_suggestion_service),
):
    """Return the cached batch, or generate one suggestion per target date."""
    force_fresh = body.force_fresh if body else False
    data = service.get_or_generate(community_id, principal, force_fresh=force_fresh)
    return Envelope(message="Event suggestions generated successfully", data=data)


@router.get("/communities/{community_id}/suggestions", response_model=Envelope)
def list_suggestions(
    community_id: str,
    status: SuggestionStatus | None = Query(None, description="Filter by status"),
    limit: int = Query(
        constants.DEFAULT_LIST_LIMIT, ge=1, le=constants.MAX_LIST_LIMIT
    ),
    auto_generate: bool = Query(True, description="Generate when none exist"),
    principal: Principal = Depends(get_principal),
    service: SuggestionService = Depends(get_suggestion_service),
):
    """Ranked persisted suggestions.

    With no status filter, an empty community falls through to generation;
    a filtered query that matches nothing returns an empty list.
    """
    result = service.list_suggestions(community_id, principal, status=status, limit=limit)
    if not result["suggestions"] and auto_generate and status is None:
        data = service.get_or_generate(community_id, principal)
        return Envelope(
            message="Event suggestions generated and retrieved successfully", data=data
        )
    return Envelope(
        message="Event suggestions retrieved successfully",
        data=result["suggestions"],
        total=result["total"],
    )


@router.get("/communities/{community_id}/seeding", response_model=Envelope)
def get_seeding_info(
    community_id: str,
    principal: Principal = Depends(get_principal),
    service: SuggestionService = Depends(get_suggestion_service),
):
    return Envelope(
        message="Seeding info retrieved successfully",
        data=service.seeding_info(community_id, principal),
    )


@router.delete("/communities/{community_id}/seeding", response_model=Envelope)
def clear_seeding(
    community_id: str,
    principal: Principal = Depends(get_principal),
    service: SuggestionService = Depends(get_suggestion_service),
):
    return Envelope(
        message="Demonstration data cleared successfully",
        data=service.clear_seeding(community_id, principal),
    )


@router.post("/communities/{community_id}/seeding/force", response_model=Envelope)
def force_reseed(
    community_id: str,
    principal: Principal = Depends(get_principal),
    service: SuggestionService = Depends(get_suggestion_service),
):
    return Envelope(
        message="Demonstration data re-seeded successfully",
        data=service.force_reseed(community_id, principal),
    )


@router.post("/communities/{community_id}/suggestions/expire", response_model=Envelope)
def expire_suggestions(
    community_id: str,
    principal: Principal = Depends(get_principal),
    service: SuggestionService = Depends(get_suggestion_service),
):
    expired = service.expire_stale(community_id, principal)
    return Envelope(
        message=f"{expired} suggestion(s) expired", data={"expired": expired}
    )


# =========================================================================
# Per-suggestion
# =========================================================================
@router.post("/suggestions/{suggestion_id}/broadcast", response_model=Envelope)
def broadcast_suggestion(
    suggestion_id: str,
    body: BroadcastRequestBody | None = None,
    principal: Principal = Depends(get_principal),
    service: SuggestionService = Depends(get_suggestion_service),
):
    body = body or BroadcastRequestBody()
    data = service.broadcast(
        suggestion_id,
        principal,
        message=body.message,
        schedule_for=body.schedule_for,
        channels=body.channels,
    )
    return Envelope(message="Event suggestion broadcasted successfully", data=data)


@router.patch("/suggestions/{suggestion_id}/status", response_model=Envelope)
def review_suggestion(
    suggestion_id: str,
    body: ReviewRequest,
    principal: Principal = Depends(get_principal),
    service: SuggestionService = Depends(get_suggestion_service),
):
    data = service.review(
        suggestion_id,
        principal,
        body.status,
        feedback=body.owner_feedback,
        rating=body.owner_rating,
    )
    return Envelope(message="Suggestion status updated successfully", data=data)


@router.post("/suggestions/{suggestion_id}/implement", response_model=Envelope)
def implement_suggestion(
    suggestion_id: str,
    body: ImplementRequest | None = None,
    principal: Principal = Depends(get_principal),
    service: SuggestionService = Depends(get_suggestion_service),
):
    body = body or ImplementRequest()
    data = service.implement(
        suggestion_id,
        principal,
        start_date=body.start_date,
        end_date=body.end_date,
        max_capacity=body.max_capacity,
        estimated_cost=body.estimated_cost,
        facility_id=body.facility_id,
    )
    return Envelope(message="Suggestion implemented as event successfully", data=data)
