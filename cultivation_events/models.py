"""Core domain models.

Every generation stage operates on these types. Pydantic is used for
validation and serialisation at every data boundary; wire names are
camelCase (``hpChange``), Python attributes are snake_case.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AdventureType = Literal["normal", "lucky", "secret_realm"]
RiskLevel = Literal["low", "medium", "high", "extreme"]
EventColor = Literal["normal", "gain", "danger", "special"]
Role = Literal["system", "user", "assistant"]

EVENT_COLORS: tuple[str, ...] = ("normal", "gain", "danger", "special")

MIN_REALM_LEVEL = 1
MAX_REALM_LEVEL = 9


class Realm(str, Enum):
    """Cultivation tiers, declared in progression order."""

    QI_REFINING = "qi_refining"
    FOUNDATION_ESTABLISHMENT = "foundation_establishment"
    GOLDEN_CORE = "golden_core"
    NASCENT_SOUL = "nascent_soul"
    DEITY_TRANSFORMATION = "deity_transformation"
    VOID_REFINING = "void_refining"
    TRIBULATION_ASCENSION = "tribulation_ascension"

    @property
    def rank(self) -> int:
        return REALM_ORDER.index(self)

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


REALM_ORDER: tuple[Realm, ...] = tuple(Realm)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """camelCase dict with absent optional fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ChatMessage(BaseModel):
    """One entry of an outgoing chat-completion request."""

    role: Role
    content: str


class PlayerStats(_WireModel):
    """Snapshot of the player, used to flavour prompts and bound hp deltas."""

    name: str = "You"
    hp: int = 0
    max_hp: int = 0
    attack: int = 0
    defense: int = 0
    spirit: int = 0
    physique: int = 0
    speed: int = 0


class GenerationContext(_WireModel):
    """Immutable per-call input to the adventure generator."""

    model_config = ConfigDict(frozen=True)

    realm: Realm
    realm_level: int = Field(default=1, ge=MIN_REALM_LEVEL, le=MAX_REALM_LEVEL)
    adventure_type: AdventureType = "normal"
    risk_level: RiskLevel | None = None
    location_name: str | None = None
    location_hint: str | None = None
    player: PlayerStats | None = None


class ReputationChoice(_WireModel):
    text: str
    reputation_change: int = Field(default=0, ge=-30, le=50)
    description: str | None = None
    hp_change: int | None = None
    exp_change: int | None = None
    spirit_stones_change: int | None = None


class ReputationEvent(_WireModel):
    """A choice the player has to make; each choice moves reputation."""

    title: str
    description: str
    choices: list[ReputationChoice] = Field(default_factory=list)


class AdventureOutcome(_WireModel):
    """The validated result of one adventure event.

    Required fields are always populated. Optional fields are ``None`` when
    the event did not produce them and are left out of ``to_payload()``.
    """

    story: str
    hp_change: int = 0
    exp_change: int = 0
    spirit_stones_change: int = 0
    event_color: EventColor = "normal"

    item_obtained: dict[str, Any] | None = None
    items_obtained: list[dict[str, Any]] | None = None
    pet_obtained: str | None = None
    pet_opportunity: dict[str, Any] | None = None
    inheritance_level_change: int | None = None
    trigger_secret_realm: bool | None = None
    attribute_reduction: dict[str, Any] | None = None
    reputation_change: int | None = None
    lottery_tickets_change: int | None = None
    reputation_event: ReputationEvent | None = None


class AdversaryName(_WireModel):
    name: str
    title: str
