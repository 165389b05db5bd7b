import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docstore.api.routes import router as api_router
from docstore.config import public_settings, settings, setup_logging
from docstore.context import StoreContext
from docstore.errors import DocumentStoreError, EngineUnavailableError

logger = setup_logging()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def create_app(context: StoreContext | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ctx = context or StoreContext(settings)
        app.state.context = ctx
        try:
            await ctx.start()
        except DocumentStoreError as exc:
            # Requests retry initialisation lazily; keep serving.
            logger.error("Document store not ready at startup: %s", exc.message)
        try:
            yield
        finally:
            await ctx.aclose()

    app = FastAPI(title="Chroma Document Store", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
        )
        return _error(status.HTTP_400_BAD_REQUEST, details or "Invalid request")

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(EngineUnavailableError)
    async def engine_unavailable_handler(request: Request, exc: EngineUnavailableError):
        logger.error("Vector engine unavailable", extra={"path": request.url.path})
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, exc.message)

    @app.exception_handler(DocumentStoreError)
    async def store_error_handler(request: Request, exc: DocumentStoreError):
        logger.error("Document store error: %s", exc.message, extra={"path": request.url.path})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.message)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    app.include_router(api_router)
    return app


logger.info("Application starting")
logger.info("Loaded settings: %s", public_settings())
app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.app_host, port=settings.app_port)


if __name__ == "__main__":
    run()
