"""Outward-facing generators consumed by the UI layer.

Flow for one adventure event:
  1. ProgressionScaler turns the context into reward ranges + instructions.
  2. The system/user messages are rendered from Handlebars templates.
  3. RequestCoordinator issues (or reuses) the chat-completion call.
  4. The reply is sanitized and validated into an AdventureOutcome.
  5. hpChange is clamped to half the player's max health when it is known.

None of the public methods raise for pipeline failures: any exception is
logged together with the raw and sanitized payloads, and a fallback value
is returned.
"""

from __future__ import annotations

import logging

from cultivation_events.config import AIConfig, describe_ai_config, validate_ai_config
from cultivation_events.coordinator import RequestCoordinator
from cultivation_events.fallback import FallbackProvider, TemplateFallback
from cultivation_events.llm import HttpLLM
from cultivation_events.models import (
    AdventureOutcome,
    AdventureType,
    AdversaryName,
    GenerationContext,
    Realm,
)
from cultivation_events.outcome import parse_adversary_name, parse_outcome
from cultivation_events.prompts import (
    ADVENTURE_MAX_TOKENS,
    ADVENTURE_TEMPERATURE,
    ADVERSARY_MAX_TOKENS,
    ADVERSARY_TEMPERATURE,
    adventure_messages,
    adversary_messages,
    hp_limit,
)
from cultivation_events.sanitizer import sanitize
from cultivation_events.scaling import ProgressionScaler

logger = logging.getLogger(__name__)

def clamp_hp_change(outcome: AdventureOutcome, context: GenerationContext) -> AdventureOutcome:
    limit = hp_limit(context)
    if limit is None or abs(outcome.hp_change) <= limit:
        return outcome
    clamped = max(-limit, min(limit, outcome.hp_change))
    logger.info("hpChange %d exceeds limit %d, clamped to %d", outcome.hp_change, limit, clamped)
    return outcome.model_copy(update={"hp_change": clamped})


class EventGenerator:
    """Generates adventure events, breakthrough narration and adversary names.

    Args:
        coordinator: Request coordinator wrapping the transport.
        scaler:      Progression scaler; defaults to the built-in realm table.
        fallback:    Offline content provider; defaults to TemplateFallback.
        enabled:     False when the AI configuration is unusable. A disabled
                     generator never touches the network.
    """

    def __init__(
        self,
        coordinator: RequestCoordinator,
        scaler: ProgressionScaler | None = None,
        fallback: FallbackProvider | None = None,
        enabled: bool = True,
    ) -> None:
        self._coordinator = coordinator
        self._scaler = scaler or ProgressionScaler()
        self._fallback = fallback or TemplateFallback()
        self._enabled = enabled

    @classmethod
    def from_config(cls, config: AIConfig, **kwargs) -> EventGenerator:
        """Build a generator; an invalid config is reported once, here."""
        valid, error = validate_ai_config(config)
        if not valid:
            logger.warning("AI configuration is invalid: %s", error)
            logger.info(describe_ai_config(config))
        coordinator = RequestCoordinator(HttpLLM.from_config(config))
        return cls(coordinator, enabled=valid, **kwargs)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def coordinator(self) -> RequestCoordinator:
        return self._coordinator

    async def generate_adventure_event(self, context: GenerationContext) -> AdventureOutcome:
        if not self._enabled:
            return self._fallback.disabled_outcome()

        raw = cleaned = ""
        try:
            scaling = self._scaler.scale(context)
            messages = adventure_messages(context, scaling)
            raw = await self._coordinator.submit(
                messages, ADVENTURE_TEMPERATURE, ADVENTURE_MAX_TOKENS
            )
            cleaned = sanitize(raw)
            outcome = parse_outcome(cleaned)
        except Exception:
            logger.exception(
                "Adventure event generation failed\nraw: %r\nsanitized: %r", raw, cleaned,
            )
            return self._fallback.adventure_outcome()

        return clamp_hp_change(outcome, context)

    async def generate_breakthrough_narration(
        self,
        realm: str,
        success: bool,
        player_name: str | None = None,
        current_realm: Realm | None = None,
    ) -> str:
        """Narration for a breakthrough attempt into ``realm``.

        Drawn from the template library; no model call.
        """
        return self._fallback.breakthrough_text(realm, success, player_name, current_realm)

    async def generate_adversary_name(
        self, realm: Realm, adventure_type: AdventureType = "normal"
    ) -> AdversaryName:
        if not self._enabled:
            return self._fallback.adversary_name(realm, adventure_type)

        raw = ""
        try:
            raw = await self._coordinator.submit(
                adversary_messages(realm, adventure_type),
                ADVERSARY_TEMPERATURE,
                ADVERSARY_MAX_TOKENS,
            )
            named = parse_adversary_name(sanitize(raw))
        except Exception:
            logger.exception("Adversary name generation failed (raw: %r)", raw)
            named = None

        return named or self._fallback.adversary_name(realm, adventure_type)
