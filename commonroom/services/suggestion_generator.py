"""
commonroom.services.suggestion_generator — One Suggestion per Target Date
===========================================================================

Prompt → completion → parse, with the deterministic fallback on a
malformed reply.  A batch shares one monotonic deadline; each completion
call gets whatever budget is left (capped at the client timeout).

Only :class:`MalformedUpstreamResponse` is recovered here.
:class:`UpstreamUnavailable` aborts the whole batch so the caller never
sees a mix of generated and missing dates.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from commonroom import constants
from commonroom.engine.parsing import SuggestionDraft, fallback_suggestion, parse_completion
from commonroom.engine.prompts import CommunitySnapshot, build_prompt
from commonroom.engine.targets import TargetDate
from commonroom.errors import MalformedUpstreamResponse, UpstreamUnavailable
from commonroom.services.completion_client import CompletionClient

logger = logging.getLogger(__name__)


class SuggestionGenerator:
    def __init__(
        self,
        client: CompletionClient,
        *,
        prompt_history_limit: int = constants.PROMPT_HISTORY_LIMIT,
        call_timeout: float = constants.DEFAULT_COMPLETION_TIMEOUT,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.prompt_history_limit = prompt_history_limit
        self.call_timeout = call_timeout
        self._monotonic = monotonic

    def generate_for_date(
        self,
        community: CommunitySnapshot,
        target: TargetDate,
        *,
        timeout: float | None = None,
    ) -> SuggestionDraft:
        """Return exactly one draft for *target*.

        Raises
        ------
        UpstreamUnavailable
            If the completion service cannot be reached.
        """
        prompt = build_prompt(community, target, history_limit=self.prompt_history_limit)
        text = self.client.complete(prompt, timeout=timeout)

        try:
            draft = parse_completion(text, target)
        except MalformedUpstreamResponse as exc:
            logger.warning(
                "Unusable completion for %s (%s): %s; using fallback",
                community.id,
                target.context,
                exc.message,
            )
            draft = fallback_suggestion(target)

        draft.based_on_event_ids = [
            e.id for e in community.past_events[: self.prompt_history_limit]
        ]
        logger.info(
            "Generated suggestion %r for %s (%s)",
            draft.title,
            community.id,
            target.context,
        )
        return draft

    def generate_batch(
        self,
        community: CommunitySnapshot,
        targets: Sequence[TargetDate],
        *,
        budget_seconds: float,
    ) -> list[SuggestionDraft]:
        """One draft per target, in order, all within *budget_seconds*."""
        if not self.client.is_available:
            raise UpstreamUnavailable("AI service not available")

        deadline = self._monotonic() + budget_seconds
        drafts: list[SuggestionDraft] = []
        for target in targets:
            remaining = deadline - self._monotonic()
            if remaining <= 0:
                logger.error(
                    "Generation budget of %.1fs exhausted for %s after %d/%d dates",
                    budget_seconds,
                    community.id,
                    len(drafts),
                    len(targets),
                )
                raise UpstreamUnavailable("AI service deadline exceeded")
            drafts.append(
                self.generate_for_date(
                    community, target, timeout=min(remaining, self.call_timeout)
                )
            )
        return drafts
