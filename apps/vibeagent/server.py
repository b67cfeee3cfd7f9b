import contextlib
from typing import Optional

from fastapi import FastAPI

from .api.app import router, shutdown_event
from .session import AutomationSession
from .settings import AgentSettings

SETTINGS = AgentSettings()


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await shutdown_event(app)


def create_app(session: Optional[AutomationSession] = None) -> FastAPI:
    app = FastAPI(title="vibe-agent", lifespan=lifespan)
    app.state.session = session
    app.include_router(router)
    return app


app = create_app(AutomationSession.from_settings(SETTINGS))
