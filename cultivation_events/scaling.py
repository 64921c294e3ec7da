"""Progression-aware reward ranges and equipment bands.

Rewards grow exponentially with the realm (doubling per tier) and linearly
with the level inside a realm (+30 % per level). Equipment bands are fixed
percentages of the realm's baseline combat stats, themselves nudged +5 % per
level. The numbers only guide the model; nothing here trusts the reply.

Everything is a pure function of the GenerationContext.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from cultivation_events.llm import ConfigurationError
from cultivation_events.models import REALM_ORDER, GenerationContext, Realm, RiskLevel
from cultivation_events.prompts import render_prompt, type_instruction_template

logger = logging.getLogger(__name__)

# per-level growth, in percent
LEVEL_REWARD_STEP = 30
LEVEL_STAT_STEP = 5


class RealmStats(BaseModel):
    """Baseline combat stats of a freshly reached realm."""

    attack: int
    defense: int
    max_hp: int
    spirit: int
    physique: int
    speed: int


REALM_BASE_STATS: dict[Realm, RealmStats] = {
    Realm.QI_REFINING: RealmStats(attack=10, defense=5, max_hp=100, spirit=10, physique=10, speed=10),
    Realm.FOUNDATION_ESTABLISHMENT: RealmStats(attack=30, defense=15, max_hp=300, spirit=30, physique=30, speed=25),
    Realm.GOLDEN_CORE: RealmStats(attack=80, defense=40, max_hp=800, spirit=80, physique=80, speed=60),
    Realm.NASCENT_SOUL: RealmStats(attack=200, defense=100, max_hp=2000, spirit=200, physique=200, speed=150),
    Realm.DEITY_TRANSFORMATION: RealmStats(attack=500, defense=250, max_hp=5000, spirit=500, physique=500, speed=350),
    Realm.VOID_REFINING: RealmStats(attack=1200, defense=600, max_hp=12000, spirit=1200, physique=1200, speed=800),
    Realm.TRIBULATION_ASCENSION: RealmStats(attack=3000, defense=1500, max_hp=30000, spirit=3000, physique=3000, speed=2000),
}


class RewardRange(BaseModel):
    exp_min: int
    exp_max: int
    stones_min: int
    stones_max: int
    rarity: str = "moderate"

    def scaled(self, realm: Realm, level: int) -> RewardRange:
        factor = 2 ** realm.rank * (100 + (level - 1) * LEVEL_REWARD_STEP)
        return RewardRange(
            exp_min=self.exp_min * factor // 100,
            exp_max=self.exp_max * factor // 100,
            stones_min=self.stones_min * factor // 100,
            stones_max=self.stones_max * factor // 100,
            rarity=self.rarity,
        )


NORMAL_REWARDS = RewardRange(exp_min=10, exp_max=100, stones_min=5, stones_max=50, rarity="common")
LUCKY_REWARDS = RewardRange(exp_min=100, exp_max=1000, stones_min=50, stones_max=500, rarity="legendary")

SECRET_REALM_REWARDS: dict[RiskLevel | None, RewardRange] = {
    None: RewardRange(exp_min=50, exp_max=500, stones_min=100, stones_max=1000, rarity="moderate"),
    "low": RewardRange(exp_min=50, exp_max=300, stones_min=100, stones_max=600, rarity="low"),
    "medium": RewardRange(exp_min=100, exp_max=500, stones_min=200, stones_max=1000, rarity="moderate"),
    "high": RewardRange(exp_min=200, exp_max=800, stones_min=400, stones_max=1500, rarity="high"),
    "extreme": RewardRange(exp_min=400, exp_max=1200, stones_min=800, stones_max=2500, rarity="very high"),
}

# (min, max) percent of the realm's baseline stat; every bound is at least 1
EQUIPMENT_BANDS: dict[str, tuple[int, int]] = {
    "common": (5, 8),
    "rare": (8, 12),
    "legendary": (12, 18),
    "mythic": (35, 50),
}


class StatRange(BaseModel):
    min: int
    max: int

    def __str__(self) -> str:
        return f"{self.min}-{self.max}"


class EquipmentBand(BaseModel):
    attack: StatRange
    defense: StatRange
    max_hp: StatRange
    spirit: StatRange
    physique: StatRange
    speed: StatRange


class RarityOdds(BaseModel):
    common: int
    rare: int
    legendary: int


class Scaling(BaseModel):
    """Everything the prompt needs to know about the player's progression."""

    realm: Realm
    multiplier: float
    rewards: RewardRange
    base_stats: RealmStats
    equipment: dict[str, EquipmentBand]
    rarity_odds: RarityOdds
    instructions: str


def realm_multiplier(realm: Realm, level: int) -> float:
    return 2 ** realm.rank * (1 + (level - 1) * LEVEL_REWARD_STEP / 100)


def reward_range(context: GenerationContext) -> RewardRange:
    if context.adventure_type == "lucky":
        base = LUCKY_REWARDS
    elif context.adventure_type == "secret_realm":
        base = SECRET_REALM_REWARDS[context.risk_level]
    else:
        base = NORMAL_REWARDS
    return base.scaled(context.realm, context.realm_level)


def level_stats(stats: RealmStats, level: int) -> RealmStats:
    percent = 100 + (level - 1) * LEVEL_STAT_STEP
    return RealmStats(**{k: v * percent // 100 for k, v in stats.model_dump().items()})


def equipment_bands(stats: RealmStats) -> dict[str, EquipmentBand]:
    bands: dict[str, EquipmentBand] = {}
    for rarity, (low, high) in EQUIPMENT_BANDS.items():
        bands[rarity] = EquipmentBand(**{
            stat: StatRange(min=max(1, value * low // 100), max=max(1, value * high // 100))
            for stat, value in stats.model_dump().items()
        })
    return bands


def rarity_odds(realm: Realm) -> RarityOdds:
    i = realm.rank
    return RarityOdds(
        common=max(0, 60 - i * 10),
        rare=min(30 + i * 5, 50),
        legendary=min(i * 3, 20),
    )


class ProgressionScaler:
    """Derives a Scaling from a GenerationContext.

    ``stats_table`` maps each realm to its baseline stats. A realm missing
    from the table is replaced by the lowest realm once; if that is missing
    too the table is broken and ConfigurationError is raised.
    """

    def __init__(self, stats_table: dict[Realm, RealmStats] | None = None) -> None:
        self._stats = REALM_BASE_STATS if stats_table is None else stats_table

    def scale(self, context: GenerationContext) -> Scaling:
        try:
            return self._scale(context)
        except KeyError:
            lowest = REALM_ORDER[0]
            logger.warning(
                "No baseline stats for realm %s, falling back to %s",
                context.realm.value, lowest.value,
            )
            try:
                return self._scale(context.model_copy(update={"realm": lowest}))
            except KeyError as e:
                raise ConfigurationError(
                    f"Realm stats table has no entry for {lowest.value}"
                ) from e

    def _scale(self, context: GenerationContext) -> Scaling:
        stats = level_stats(self._stats[context.realm], context.realm_level)
        rewards = reward_range(context)
        odds = rarity_odds(context.realm)
        equipment = equipment_bands(stats)
        instructions = render_prompt(
            type_instruction_template(context.adventure_type),
            {
                "rewards": rewards.model_dump(),
                "odds": odds.model_dump(),
                "risk": context.risk_level,
                "location": context.location_name,
                "location_hint": context.location_hint,
            },
        )
        return Scaling(
            realm=context.realm,
            multiplier=realm_multiplier(context.realm, context.realm_level),
            rewards=rewards,
            base_stats=stats,
            equipment=equipment,
            rarity_odds=odds,
            instructions=instructions,
        )
