"""FastAPI dependency helpers.

Usage in a route::

    @router.get("/subscriptions")
    async def list_subscriptions(
        engine: Annotated[RelayEngine, Depends(get_engine)],
    ) -> ...:
        ...
"""

from __future__ import annotations

from fastapi import Request

from tube_relay.engine.client import RelayEngine  # noqa: TC001
from tube_relay.errors.definitions import ErrEngineNotReady


def get_engine(request: Request) -> RelayEngine:
    """Return the engine stored on ``app.state`` by the lifespan.

    Raises:
        RelayError: 503 if the engine has not been started.
    """
    engine: RelayEngine | None = getattr(request.app.state, "engine", None)
    if engine is None or not engine.is_initialized:
        raise ErrEngineNotReady
    return engine
