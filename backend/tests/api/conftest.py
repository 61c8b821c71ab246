"""API-specific test fixtures."""

from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ghoste.core.auth import AuthUser, optional_auth


class CallerSwitch:
    """Mutable stand-in for the authenticated caller.

    Tests set ``caller.user_id`` (or leave it None for an anonymous request)
    before issuing requests through ``api_client``.
    """

    def __init__(self):
        self.user_id: str | None = None

    async def __call__(self) -> AuthUser | None:
        if self.user_id is None:
            return None
        return AuthUser(user_id=self.user_id, claims={"sub": self.user_id})


@pytest.fixture
def caller() -> CallerSwitch:
    return CallerSwitch()


@pytest.fixture
def api_client(ledger, cost_cache, caller):
    """FastAPI test client wired to the in-memory ledger and cost cache.

    No database or Redis: the ledger, cache and auth dependencies are
    overridden, and the lifespan skips init_db/init_redis.
    """
    from fastapi import HTTPException
    from fastapi.middleware.cors import CORSMiddleware

    from ghoste.api.routes import api_router
    from ghoste.api.routes.credits import get_cost_cache, get_ledger
    from ghoste.core.config import get_settings
    from ghoste.credits.errors import CreditError
    from ghoste.main import credit_error_handler, generic_exception_handler, http_exception_handler
    from ghoste.middleware.correlation import setup_correlation_middleware

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        app.state.shutting_down = False
        yield

    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Ghoste credits - Test Client",
        version="0.1.0",
        lifespan=test_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_correlation_middleware(app)

    # Exception handlers (needed for debug_id and credit error contracts)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(CreditError)(credit_error_handler)
    app.exception_handler(Exception)(generic_exception_handler)

    app.include_router(api_router, prefix="/api")

    app.dependency_overrides[optional_auth] = caller
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_cost_cache] = lambda: cost_cache

    with TestClient(app) as client:
        yield client
