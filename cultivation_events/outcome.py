"""Turn sanitized model output into a fully-populated AdventureOutcome.

Only text that is not JSON at all is an error (ContentError). Anything that
parses is coerced field by field: required fields fall back to safe
defaults, optional fields survive only when present and truthy.
"""

import json
import logging
import math
from typing import Any

from cultivation_events.llm import ContentError
from cultivation_events.models import (
    EVENT_COLORS,
    AdventureOutcome,
    AdversaryName,
    ReputationChoice,
    ReputationEvent,
)

logger = logging.getLogger(__name__)

DEFAULT_STORY = (
    "You wander the wilds for a while, but the Dao is vast and distant; "
    "this time you come back empty-handed."
)
DEFAULT_EVENT_TITLE = "Mysterious Encounter"
DEFAULT_EVENT_DESCRIPTION = "You stumble into a situation that demands a choice."
DEFAULT_CHOICE_TEXT = "Walk away"

REPUTATION_CHOICE_MIN = -30
REPUTATION_CHOICE_MAX = 50

# optional fields copied as-is when truthy, keyed by wire name
_PASSTHROUGH_FIELDS: dict[str, type | tuple[type, ...]] = {
    "itemObtained": dict,
    "petObtained": str,
    "petOpportunity": dict,
    "attributeReduction": dict,
}
_NUMERIC_OPTIONAL_FIELDS = (
    "inheritanceLevelChange",
    "reputationChange",
    "lotteryTicketsChange",
)


def ensure_number(value: Any, default: float) -> float:
    """Finite int/float or numeral string, else ``default``."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return default
        return parsed if math.isfinite(parsed) else default
    return default


def _as_int(value: Any, default: int = 0) -> int:
    return int(round(ensure_number(value, default)))


def _loads_object(text: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ContentError(f"Model output is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ContentError(f"Model output must be a JSON object, got {type(data).__name__}")
    return data


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_choice(raw: dict[str, Any]) -> ReputationChoice:
    change = _as_int(raw.get("reputationChange"))
    clamped = max(REPUTATION_CHOICE_MIN, min(REPUTATION_CHOICE_MAX, change))
    if clamped != change:
        logger.debug("reputation choice change %d clamped to %d", change, clamped)

    choice: dict[str, Any] = {
        "text": _text(raw.get("text")) or DEFAULT_CHOICE_TEXT,
        "reputation_change": clamped,
    }
    if _text(raw.get("description")):
        choice["description"] = _text(raw["description"])
    for wire, attr in (
        ("hpChange", "hp_change"),
        ("expChange", "exp_change"),
        ("spiritStonesChange", "spirit_stones_change"),
    ):
        if raw.get(wire) is not None:
            choice[attr] = _as_int(raw[wire])
    return ReputationChoice(**choice)


def normalize_reputation_event(raw: dict[str, Any]) -> ReputationEvent:
    fallback_text = _text(raw.get("text"))
    raw_choices = raw.get("choices")
    choices = [
        normalize_choice(c)
        for c in (raw_choices if isinstance(raw_choices, list) else [])
        if isinstance(c, dict)
    ]
    changes = [c.reputation_change for c in choices]
    if len(set(changes)) != len(changes):
        logger.warning("Reputation event has choices with equal reputation changes: %s", changes)
    return ReputationEvent(
        title=_text(raw.get("title")) or fallback_text or DEFAULT_EVENT_TITLE,
        description=_text(raw.get("description")) or fallback_text or DEFAULT_EVENT_DESCRIPTION,
        choices=choices,
    )


def validate_outcome(data: dict[str, Any]) -> AdventureOutcome:
    """Coerce an already-parsed object into an AdventureOutcome."""
    color = data.get("eventColor")
    fields: dict[str, Any] = {
        "story": _text(data.get("story")) or DEFAULT_STORY,
        "hpChange": _as_int(data.get("hpChange")),
        "expChange": _as_int(data.get("expChange")),
        "spiritStonesChange": _as_int(data.get("spiritStonesChange")),
        "eventColor": color if color in EVENT_COLORS else "normal",
    }

    for name, kind in _PASSTHROUGH_FIELDS.items():
        value = data.get(name)
        if value and isinstance(value, kind):
            fields[name] = value

    for name in _NUMERIC_OPTIONAL_FIELDS:
        if data.get(name):
            number = _as_int(data[name])
            if number:
                fields[name] = number

    items = data.get("itemsObtained")
    if isinstance(items, list):
        items = [item for item in items if isinstance(item, dict) and item]
        if items:
            fields["itemsObtained"] = items

    if data.get("triggerSecretRealm") in (True, "true"):
        fields["triggerSecretRealm"] = True

    event = data.get("reputationEvent")
    if event and isinstance(event, dict):
        fields["reputationEvent"] = normalize_reputation_event(event)

    return AdventureOutcome.model_validate(fields)


def parse_outcome(text: str) -> AdventureOutcome:
    """Parse sanitized text; raises ContentError when it is not a JSON object."""
    return validate_outcome(_loads_object(text))


def parse_adversary_name(text: str) -> AdversaryName | None:
    """Parse ``{"name": ..., "title": ...}``; None when either is blank."""
    data = _loads_object(text)
    name, title = _text(data.get("name")), _text(data.get("title"))
    if not name or not title:
        return None
    return AdversaryName(name=name, title=title)
