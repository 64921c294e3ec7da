from contextlib import asynccontextmanager

from fastapi import FastAPI

from cultivation_events.config import get_ai_config
from cultivation_events.routes import router
from cultivation_events.service import EventGenerator


def create_app(generator: EventGenerator | None = None) -> FastAPI:
    resolved = generator or EventGenerator.from_config(get_ai_config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await resolved.coordinator.aclose()

    app = FastAPI(title="Cultivation Events", lifespan=lifespan)
    app.state.generator = resolved
    app.include_router(router, prefix="/api")
    return app
