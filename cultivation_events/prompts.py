"""Handlebars prompt rendering for the generation requests."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import pybars

from cultivation_events.models import AdventureType, ChatMessage, GenerationContext, Realm

if TYPE_CHECKING:
    from cultivation_events.scaling import Scaling


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Event type instructions ──────────────────────────────

NORMAL_INSTRUCTIONS = """[Ordinary training] An everyday adventure in the wilds.
Event kinds: beast fight / spirit herb / meeting a cultivator / small cave abode / sudden insight / danger / spirit stone vein / rescue / spirit spring / spirit pet (fairly likely, about 15-20%) / pet opportunity (about 10-15%) / inheritance (extremely rare) / demonic cultivator (15-20% danger) / trap (15-20% danger) / random secret realm (5%) / reputation event (20-30%, needs a player choice).
Scene: environment (10-30 words) + action (10-20 words) + event detail (20-50 words) + feeling (optional). Never open two events the same way.
Item kinds: herbs / pills / materials / weapons / armour (head, shoulders, chest, gloves, legs, boots at 15-20% each) / jewellery / rings / artifacts.
Item names: invent a fresh name every time that fits the scene; avoid stock names.
Item rarity: {{odds.common}}% common, {{odds.rare}}% rare, {{odds.legendary}}% legendary.
Rewards: cultivation exp {{rewards.exp_min}}-{{rewards.exp_max}}, spirit stones {{rewards.stones_min}}-{{rewards.stones_max}}, inheritance levels 1-4 (extremely rare).
Reputation events: with 20-30% probability add a reputationEvent with 2-3 choices, each with a different reputationChange between -30 and +50 and optional other rewards or penalties. Scenes: helping others / punishing evil / sect missions / uncovered secrets / moral dilemmas."""

LUCKY_INSTRUCTIONS = """[Great fortune] An extremely rare positive event, eventColor="special".
Match the realm: low realms find ancient abodes, rare techniques or a master's guidance; middle realms find ruins, legendary treasures or enlightenment; high realms find immortal palaces and supreme treasures.
Item names: unique and elegant, worthy of a great fortune; avoid ordinary names.
Item rarity: rare or legendary at low realms, legendary or mythic at high realms.
Rewards: cultivation exp {{rewards.exp_min}}-{{rewards.exp_max}}, spirit stones {{rewards.stones_min}}-{{rewards.stones_max}}."""

SECRET_REALM_INSTRUCTIONS = """[Secret realm exploration]{{#if risk}} ({{risk}} risk){{/if}}
{{#if location}}The player is exploring the secret realm [{{{location}}}]{{#if location_hint}}: {{{location_hint}}}{{/if}}. Every event must be tied closely to the character of [{{{location}}}].
{{/if}}Event kinds: guardian beast / lost treasure / mechanism trap / treasury or inheritance / rival cultivators / secrets of the realm / spatial rift.
Scenes: ancient ruins / strange terrain / forbidden grounds / natural wonders. Higher risk means a more dangerous scene.
Describe the environment, the exploration and the event details, differently every time.
Damage is mostly to health (hpChange may be negative); permanent attributes are not reduced.
Item names: unique names tied to the realm's theme and the risk level.
If itemsObtained is returned, every item name in it must be different.
Item rarity: {{rewards.rarity}} (at least rare).
Rewards: cultivation exp {{rewards.exp_min}}-{{rewards.exp_max}}, spirit stones {{rewards.stones_min}}-{{rewards.stones_max}}."""

_TYPE_INSTRUCTIONS: dict[str, str] = {
    "normal": NORMAL_INSTRUCTIONS,
    "lucky": LUCKY_INSTRUCTIONS,
    "secret_realm": SECRET_REALM_INSTRUCTIONS,
}


def type_instruction_template(adventure_type: AdventureType) -> str:
    return _TYPE_INSTRUCTIONS.get(adventure_type, NORMAL_INSTRUCTIONS)


# ── Adventure event ──────────────────────────────────────

ADVENTURE_SYSTEM_PROMPT = """You are the event generator (Game Master) of a cultivation game. From the player's state and the event type you produce one event as JSON that follows the game rules.

1. Output format (highest priority)
- Return only a JSON object: no preamble, no code fences, no comments.
- Never use null, undefined or empty strings as values; leave a field out instead.
- Numbers are bare numbers ("spirit": 8), never +8 or "8".

Required fields: story (50-200 words), hpChange (integer), expChange (integer), spiritStonesChange (integer), eventColor ("normal" | "gain" | "danger" | "special").

Optional fields: itemObtained (one item object), itemsObtained (array of items with distinct names), inheritanceLevelChange (integer 1-4, extremely rare), triggerSecretRealm (boolean, extremely rare), petObtained ("pet-spirit-fox" | "pet-thunder-tiger" | "pet-phoenix"), petOpportunity (object), attributeReduction (object, extremely dangerous events only), reputationChange (integer -50 to +50), reputationEvent (object: title, description, choices).

2. Event colours
- normal: nothing much gained or lost
- gain: items, cultivation or spirit stones gained
- danger: health lost or attributes reduced
- special: a great fortune with high-value rewards

3. Balance
- |hpChange| must not exceed half of the player's max health (rounded down) and must match the story.
- attributeReduction is only allowed in extremely dangerous events and must come with a rare reward.
- Equipment stats must stay inside the band of their rarity given in the request.
- Pills and herbs carry both effect (hp, exp, lifespan) and permanentEffect (attack, defense, spirit, physique, speed, maxHp, maxLifespan), each with at least one non-zero value.
- Artifacts never grant exp.

4. Reputation events
- 2-3 choices; each has text, reputationChange (-30 to +50, different for every choice), optional description and optional hpChange / expChange / spiritStonesChange.

5. Never mention learning or obtaining cultivation techniques in the story; the game unlocks those itself."""

ADVENTURE_USER_PROMPT = """Player: {{{player.name}}}, {{realm}} level {{level}}{{#if player.max_hp}}, health {{player.hp}}/{{player.max_hp}}, attack {{player.attack}}, defense {{player.defense}}, spirit {{player.spirit}}, physique {{player.physique}}, speed {{player.speed}}{{/if}}.
Realm baseline stats (for equipment balance): attack {{stats.attack}}, defense {{stats.defense}}, health {{stats.max_hp}}, spirit {{stats.spirit}}, physique {{stats.physique}}, speed {{stats.speed}}.
{{#if hp_limit}}Health change limit: |hpChange| <= {{hp_limit}}.
{{/if}}
{{{instructions}}}

Equipment stat bands:
{{#each equipment}}- {{name}}: attack {{attack}}, defense {{defense}}, health {{max_hp}}, spirit {{spirit}}, physique {{physique}}, speed {{speed}}
{{/each}}
Story: 50-200 words covering environment, action, sensory detail and feeling; start differently from previous events.

Return the event as a single JSON object and nothing else."""

ADVENTURE_TEMPERATURE = 0.8
ADVENTURE_MAX_TOKENS = 4000


def hp_limit(context: GenerationContext) -> int | None:
    """Largest allowed |hpChange|, or None when max health is unknown."""
    if context.player is None or context.player.max_hp <= 0:
        return None
    return context.player.max_hp // 2


def adventure_messages(context: GenerationContext, scaling: Scaling) -> list[ChatMessage]:
    player = context.player.model_dump() if context.player else {"name": "The player"}
    equipment = [
        {"name": rarity, **{stat: str(band_range) for stat, band_range in band}}
        for rarity, band in scaling.equipment.items()
    ]
    user = render_prompt(ADVENTURE_USER_PROMPT, {
        "player": player,
        "realm": scaling.realm.label,
        "level": context.realm_level,
        "stats": scaling.base_stats.model_dump(),
        "hp_limit": hp_limit(context),
        "instructions": scaling.instructions,
        "equipment": equipment,
    })
    return [
        ChatMessage(role="system", content=ADVENTURE_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user),
    ]


# ── Adversary name ───────────────────────────────────────

ADVERSARY_SYSTEM_PROMPT = (
    "You are a designer for a cultivation game and invent enemy names in a "
    "xianxia style. Always answer with strict JSON."
)

ADVERSARY_USER_PROMPT = """In a cultivation game the player meets an enemy {{place}}.
Enemy realm: {{realm}}

Invent a name and a title for the enemy. The name may be a demon beast (e.g. Bloodfang Wolf, Dark Fiend Spider) or a cultivator (e.g. Soulsever Swordsman, Bloodhand Demon). The title describes who the enemy is (e.g. Wasteland Beast, Rogue Cultivator, Realm Guardian).

Return JSON in the form:
{"name": "enemy name (2-4 words)", "title": "enemy title (2-5 words)"}

Return only the JSON."""

ADVERSARY_TEMPERATURE = 0.7
ADVERSARY_MAX_TOKENS = 200

_ADVERSARY_PLACES: dict[str, str] = {
    "normal": "in the wilds",
    "lucky": "at a place of great fortune",
    "secret_realm": "inside a secret realm",
}


def adversary_messages(realm: Realm, adventure_type: AdventureType) -> list[ChatMessage]:
    user = render_prompt(ADVERSARY_USER_PROMPT, {
        "place": _ADVERSARY_PLACES.get(adventure_type, _ADVERSARY_PLACES["normal"]),
        "realm": realm.label,
    })
    return [
        ChatMessage(role="system", content=ADVERSARY_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user),
    ]
