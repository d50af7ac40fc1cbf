"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from food_enrichment.api.admin import router as admin_router
from food_enrichment.api.models import EnrichRequest
from food_enrichment.app_logging import configure_logging
from food_enrichment.containers import AppContainer
from food_enrichment.errors import InputValidationError, ResolutionExhausted


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(RequestValidationError)
    async def invalid_body(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
        if request.url.path == "/enrich":
            return JSONResponse(status_code=400, content={"error": "Query is required"})
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/enrich")
    async def enrich(
        body: EnrichRequest, request: Request, bust: int = 0
    ) -> JSONResponse:
        """Resolve a free-text food query into an enriched nutrition record."""
        state_container: AppContainer = request.app.state.container
        try:
            result = await state_container.enrichment_service.enrich(
                body.query, body.locale, bypass_cache=bool(bust)
            )
        except InputValidationError:
            return JSONResponse(status_code=400, content={"error": "Query is required"})
        except ResolutionExhausted:
            return JSONResponse(
                status_code=404, content={"error": "No nutrition data found"}
            )
        except Exception as exc:
            logger.exception("Enrichment failed for %r", body.query)
            return JSONResponse(
                status_code=500,
                content={"error": "Enrichment failed", "details": str(exc)},
            )
        return JSONResponse(
            content=result.food.to_payload(),
            headers={"X-Cache": "HIT" if result.cache_hit else "MISS"},
        )

    return app
