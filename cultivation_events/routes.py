"""FastAPI endpoints under /api consumed by the game UI.

Every generation endpoint answers 200 with a usable value; failures of the
model are already turned into fallback content by EventGenerator.
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from cultivation_events.models import AdventureType, GenerationContext, Realm
from cultivation_events.service import EventGenerator

router = APIRouter()


class BreakthroughBody(BaseModel):
    realm: str
    success: bool
    player_name: str | None = None
    current_realm: Realm | None = None


class AdversaryBody(BaseModel):
    realm: Realm
    adventure_type: AdventureType = "normal"


def _generator(request: Request) -> EventGenerator:
    return request.app.state.generator


@router.get("/health")
async def health(request: Request):
    """Health check; reports whether model generation is enabled."""
    return {"status": "ok", "ai_enabled": _generator(request).enabled}


@router.post("/adventure-events")
async def adventure_event(body: GenerationContext, request: Request):
    """Generate one adventure event for the given progression context."""
    outcome = await _generator(request).generate_adventure_event(body)
    return outcome.to_payload()


@router.post("/breakthrough-narration")
async def breakthrough_narration(body: BreakthroughBody, request: Request):
    """Narrate a breakthrough attempt."""
    text = await _generator(request).generate_breakthrough_narration(
        body.realm, body.success, body.player_name, body.current_realm,
    )
    return {"text": text}


@router.post("/adversary-names")
async def adversary_name(body: AdversaryBody, request: Request):
    """Generate a name and title for an enemy."""
    named = await _generator(request).generate_adversary_name(body.realm, body.adventure_type)
    return named.to_payload()
