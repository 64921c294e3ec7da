"""Offline content used when the model is unavailable or its reply unusable.

The generators only depend on the FallbackProvider protocol; TemplateFallback
is the small built-in library of stock outcomes and text templates.
"""

from __future__ import annotations

import random
from typing import Protocol

from cultivation_events.models import (
    AdventureOutcome,
    AdventureType,
    AdversaryName,
    Realm,
)
from cultivation_events.outcome import DEFAULT_STORY

DISABLED_STORY = (
    "You sit in quiet meditation; all around is still. "
    "(The AI connection is not configured, so events are disabled.)"
)


class FallbackProvider(Protocol):
    def adventure_outcome(self) -> AdventureOutcome: ...

    def disabled_outcome(self) -> AdventureOutcome: ...

    def breakthrough_text(
        self,
        realm: str,
        success: bool,
        player_name: str | None = None,
        current_realm: Realm | None = None,
    ) -> str: ...

    def adversary_name(self, realm: Realm, adventure_type: AdventureType) -> AdversaryName: ...


# {name} and {realm} are substituted; keyed by the realm being entered
BREAKTHROUGH_TEMPLATES: dict[Realm, list[str]] = {
    Realm.QI_REFINING: [
        "{name} sits cross-legged and runs the basic technique; the faint qi within begins to flow. As it gathers, the bottleneck loosens and {name} breaks through to {realm}!",
        "{name} calms the mind and guides the thin qi against the meridians. After long effort it bursts through, and {name} steps into {realm}!",
        "Day after day {name} cultivates until the qi fills every channel. At last the barrier gives way and {name} reaches {realm}!",
    ],
    Realm.FOUNDATION_ESTABLISHMENT: [
        "Qi gathers like streams into a river. {name} feels the foundation settle and breaks through to {realm}, spiritual energy surging all around!",
        "{name} closes the eyes and drives the qi against the bottleneck; the meridians ring softly like brooks meeting a river. The shackles fall and {name} enters {realm}!",
        "After a long seclusion {name} feels the barrier loosen one quiet dawn. One all-out push, and {name} emerges in {realm}!",
    ],
    Realm.GOLDEN_CORE: [
        "Qi roars through {name} like a great river. With a sharp cry the bottleneck shatters and {name} breaks through to {realm}!",
        "Rosy light fills the cave abode as the core within {name} trembles and condenses. With a long howl, {name} breaks through to {realm}!",
        "{name} swallows a spirit pill and lets its power spread, riding the surge against the barrier until {realm} is reached!",
    ],
    Realm.NASCENT_SOUL: [
        "Heaven and earth show strange signs; five-coloured light circles {name} as the qi coils like dragons and shatters the wall. {name} has reached {realm}!",
        "Under the moon {name} stands on a peak and draws down starlight in a pillar to the clouds. Bathed in it, {name} breaks through to {realm}!",
        "Dragon roars echo within {name} as the qi surges like a true dragon and breaks every fetter. {name} has entered {realm}!",
    ],
    Realm.DEITY_TRANSFORMATION: [
        "Thunder rolls and {name} is tempered in the tribulation lightning. The will holds firm, and {name} is reborn in {realm}!",
        "Between life and death {name} grasps the Great Dao; the qi erupts like a phoenix from the ashes and {name} enters {realm}!",
        "The divine sense of {name} takes form and batters the realm's wall until it gives way. {name} has stepped into {realm}!",
    ],
    Realm.VOID_REFINING: [
        "The void trembles as spatial force tears at the body of {name}, yet the will does not waver. {name} is reborn in {realm}!",
        "The laws of heaven and earth appear and wrap around {name}, tempering body and soul until {name} breaks through to {realm}!",
        "Immortal light surrounds {name}; the qi flows like immortal mist and the barrier breaks. {name} has reached {realm}, close to the immortals!",
    ],
    Realm.TRIBULATION_ASCENSION: [
        "From the ninth heaven the tribulation descends! {name} endures all nine waves of lightning and is reborn in {realm}!",
        "The void quakes as {name} comprehends the Dao; spatial force floods the body and {name} steps into {realm}. The road to immortality is open!",
        "Immortal light surrounds {name} and the last wall breaks. {name} has reached {realm}, and the road to immortality is open!",
    ],
}

_FAILURE_SEVERE = "{name} storms the bottleneck, but the tribulation's might is too great and the backlash is brutal! Much cultivation is lost and must be rebuilt."
_FAILURE_SOUL = "{name} storms the bottleneck, but the foundation is unstable; the divine sense is wounded by the backlash!"
_FAILURE_BASIC = "{name} storms the bottleneck, but the foundation is unstable and the backlash strikes hard!"

NAME_PREFIXES = [
    "Blood", "Dark", "Shade", "Gloom", "Wicked", "Demon", "Fiend", "Ghost", "Bane", "Yin",
    "Gold", "Silver", "Iron", "Bronze", "Frost", "Blaze", "Thunder", "Gale", "Ice", "Venom",
    "Shadow", "Black", "White", "Crimson", "Azure", "Violet", "Mad", "Wrath", "Savage", "Cruel",
]
NAME_SUFFIXES = [
    "Wolf", "Tiger", "Leopard", "Serpent", "Spider", "Hawk", "Dragon", "Qilin", "Taotie",
    "Swordsman", "Blademaster", "Demon Cultivator", "Rogue Cultivator", "Old Monster",
    "Beast", "Wraith", "Spirit", "Fiend", "Behemoth", "Demon Lord",
]
TITLE_PREFIXES = [
    "Wasteland", "Secret Realm", "Heretic", "Demonic", "Ghostly", "Blood Path", "Shadow",
    "Netherworld", "Savage", "Bloodthirsty", "Ruthless", "Abyssal", "Tomb", "Cavern",
]
TITLE_SUFFIXES = [
    "Beast", "Demon Beast", "Rogue Cultivator", "Guardian", "Warden", "Old Monster",
    "Hermit", "Demon King", "Ghost King", "General", "Horror",
]


def _realm_key(realm: str) -> Realm | None:
    """Accept a Realm value or a display label like 'Golden Core level 3'."""
    head = realm.split(" level ")[0].strip().lower().replace(" ", "_")
    try:
        return Realm(head)
    except ValueError:
        return None


class TemplateFallback:
    """Built-in stock content.

    Args:
        rng: Random source for template choice; pass a seeded
             ``random.Random`` for deterministic output.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def adventure_outcome(self) -> AdventureOutcome:
        return AdventureOutcome(
            story=DEFAULT_STORY, hp_change=0, exp_change=5,
            spirit_stones_change=0, event_color="normal",
        )

    def disabled_outcome(self) -> AdventureOutcome:
        return AdventureOutcome(
            story=DISABLED_STORY, hp_change=5, exp_change=10,
            spirit_stones_change=0, event_color="normal",
        )

    def breakthrough_text(
        self,
        realm: str,
        success: bool,
        player_name: str | None = None,
        current_realm: Realm | None = None,
    ) -> str:
        name = player_name or "You"
        if not success:
            if current_realm in (Realm.VOID_REFINING, Realm.TRIBULATION_ASCENSION):
                template = _FAILURE_SEVERE
            elif current_realm in (Realm.NASCENT_SOUL, Realm.DEITY_TRANSFORMATION):
                template = _FAILURE_SOUL
            else:
                template = _FAILURE_BASIC
            return template.format(name=name)

        key = _realm_key(realm)
        templates = BREAKTHROUGH_TEMPLATES.get(key) or BREAKTHROUGH_TEMPLATES[Realm.GOLDEN_CORE]
        display = key.label if key is not None and realm == key.value else realm
        return self._rng.choice(templates).format(name=name, realm=display)

    def adversary_name(self, realm: Realm, adventure_type: AdventureType) -> AdversaryName:
        return AdversaryName(
            name=f"{self._rng.choice(NAME_PREFIXES)} {self._rng.choice(NAME_SUFFIXES)}",
            title=f"{self._rng.choice(TITLE_PREFIXES)} {self._rng.choice(TITLE_SUFFIXES)}",
        )
