"""Cultivation Events: model-generated adventure events with a strict outcome contract."""

from .models import (  # noqa: F401
    AdventureOutcome,
    AdversaryName,
    GenerationContext,
    PlayerStats,
    Realm,
)
from .service import EventGenerator  # noqa: F401
