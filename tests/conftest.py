import logging
from collections.abc import AsyncIterator, Iterator

import pytest
import pytest_asyncio
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from errwrap.exceptions import (
    new_forbidden_error,
    new_gateway_timeout_error,
    new_not_found_error,
)
from errwrap.handlers import register_exception_handlers
from errwrap.logging import LoggingSettings, configure_logging


def build_app() -> FastAPI:
    """Small app whose routes raise each kind of error the handlers deal with."""
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/deals/{deal_id}")
    async def get_deal(deal_id: int) -> dict[str, int]:
        raise new_not_found_error(
            "get_deal", f"Deal {deal_id} not found", payload={"deal_id": str(deal_id)}
        )

    @app.get("/hotels/{hotel_id}")
    async def get_hotel(hotel_id: int) -> dict[str, int]:
        err = new_not_found_error("get_hotel", "Hotel not found", payload={"hotel_id": hotel_id})
        err.add_payload_value("nights", 3)
        assert err.payload is not None
        err.payload["rooms"] = 2  # type: ignore[assignment]
        raise err

    @app.get("/admin")
    async def admin() -> dict[str, str]:
        raise new_forbidden_error("admin", "Admins only")

    @app.get("/upstream")
    async def upstream() -> dict[str, str]:
        try:
            raise TimeoutError("pricing service did not answer")
        except TimeoutError as exc:
            raise new_gateway_timeout_error(
                "fetch_prices", "Pricing is temporarily unavailable", cause=exc
            ) from exc

    @app.get("/boom")
    async def boom() -> dict[str, str]:
        raise RuntimeError("database password is hunter2")

    @app.get("/wrapped-below")
    async def wrapped_below() -> dict[str, str]:
        inner = new_forbidden_error("check_owner", "Not your deal")
        raise ValueError("ownership check failed") from inner

    return app


@pytest.fixture
def configured_logging() -> Iterator[None]:
    """Apply the application logging setup for one test, then restore the defaults.

    Logger caching is turned off so module-level loggers pick up later
    reconfiguration (structlog.testing.capture_logs in other tests).
    """
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    configure_logging(LoggingSettings())
    structlog.configure(cache_logger_on_first_use=False)
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest_asyncio.fixture
async def client() -> AsyncIterator[AsyncClient]:
    """HTTP client against the test app.

    raise_app_exceptions=False: Starlette re-raises exceptions after the
    catch-all Exception handler has sent its response.
    """
    async with AsyncClient(
        transport=ASGITransport(app=build_app(), raise_app_exceptions=False),
        base_url="http://test",
    ) as client:
        yield client
