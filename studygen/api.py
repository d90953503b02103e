"""
FastAPI application exposing question generation, flashcards and insights.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from studygen import __version__
from studygen.config import settings
from studygen.errors import GenerationError, ServiceNotInitializedError
from studygen.flashcards import generate_flashcards
from studygen.generator import QuestionGenerator
from studygen.insights import InsightsGenerator
from studygen.logging_config import setup_logging
from studygen.models import (
    FlashcardRequest,
    GenerationRequest,
    GenerationResponse,
    InsightsResult,
    TestResult,
)
from studygen.placeholders import build_placeholder_response

logger = logging.getLogger(__name__)

SERVICE_NAME = "studygen-question-service"
DEFAULT_SUBJECT = "General"


def _error_body(error: str, details: Any) -> Dict[str, Any]:
    return {"error": error, "details": details}


def _validation_details(exc: RequestValidationError) -> List[Dict[str, str]]:
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]


def create_app(
    generator: Optional[QuestionGenerator] = None,
    insights: Optional[InsightsGenerator] = None,
    placeholder_on_failure: Optional[bool] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        generator: Question generator (built from settings if omitted)
        insights: Insights generator; shares the generator's provider and
            rate limiter when omitted
        placeholder_on_failure: Return a degraded placeholder set instead of
            an error when generation fails (default from settings)
    """
    if generator is None:
        generator = QuestionGenerator()
    if insights is None:
        insights = InsightsGenerator(
            provider=generator.provider,
            rate_limiter=generator.rate_limiter,
        )
    if placeholder_on_failure is None:
        placeholder_on_failure = settings.placeholder_on_failure

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Start the cache sweep on startup and stop it on shutdown."""
        generator.cache.start_sweeper()
        logger.info(
            f"{SERVICE_NAME} started (initialized={generator.is_initialized})"
        )
        yield
        await generator.cache.stop_sweeper()
        logger.info(f"{SERVICE_NAME} shutting down")

    app = FastAPI(
        title="StudyGen Question Service",
        version=__version__,
        lifespan=lifespan,
        description="Generates quiz questions, flashcards and feedback from study notes.",
    )
    app.state.generator = generator
    app.state.insights = insights

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = _validation_details(exc)
        logger.info(f"Rejected invalid request to {request.url.path}: {details}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body("Invalid request", details),
        )

    @app.exception_handler(ServiceNotInitializedError)
    async def not_initialized_handler(
        request: Request, exc: ServiceNotInitializedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_error_body("Service not initialized", str(exc)),
        )

    @app.exception_handler(GenerationError)
    async def generation_error_handler(
        request: Request, exc: GenerationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Failed to generate questions", str(exc)),
        )

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {
            "status": "ok" if generator.is_initialized else "degraded",
            "service": SERVICE_NAME,
            "initialized": generator.is_initialized,
            "cache": generator.cache.get_stats(),
        }

    @app.post("/tests/generate", response_model=GenerationResponse)
    async def generate_test(request: GenerationRequest) -> GenerationResponse:
        if not request.subject:
            request = request.model_copy(update={"subject": DEFAULT_SUBJECT})
        try:
            return await generator.generate_questions(request)
        except GenerationError as e:
            if not placeholder_on_failure:
                raise
            logger.warning(f"Returning placeholder questions after failure: {e}")
            return build_placeholder_response(request)

    @app.post("/tests/flashcards")
    async def create_flashcards(request: FlashcardRequest) -> Dict[str, Any]:
        cards = generate_flashcards(request.content, request.count)
        return {
            "flashcards": [card.model_dump(mode="json", by_alias=True) for card in cards]
        }

    @app.post("/tests/{test_id}/insights", response_model=InsightsResult)
    async def test_insights(test_id: str, result: TestResult) -> InsightsResult:
        logger.info(f"Generating insights for test {test_id}")
        return await insights.generate_insights(result)

    return app


def main() -> None:
    """Run the service with uvicorn."""
    import uvicorn

    setup_logging()
    uvicorn.run(create_app(), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
