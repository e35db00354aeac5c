import logging
import socket
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from gatex import __version__
from gatex.api.dependencies import (
    AnthropicHandlerDep,
    OpenAIHandlerDep,
    PortDep,
    SystemHandlerDep,
    init_state,
    lifespan,
)
from gatex.config import Settings, get_settings
from gatex.dto import HealthResponse, ModelListResponse, StatsResponse
from gatex.handlers import openai_error_body
from gatex.protocols import BackendInvoker, ModelCatalog
from gatex.repositories import OllamaBackend
from gatex.services import RequestQueue, ResponseCache

logger = logging.getLogger(__name__)

PREFERRED_PORTS = (24680, 24681, 24682, 24683, 24684)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": (
        "Content-Type, Authorization, X-API-Key, anthropic-version, anthropic-beta"
    ),
}

# The chat endpoints accept every method so misuse gets a protocol-shaped 405
CHAT_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

router = APIRouter()


@router.get("/models", response_model=ModelListResponse)
async def list_models(handler: SystemHandlerDep) -> ModelListResponse:
    """OpenAI-style model list."""
    return await handler.list_models()


@router.api_route("/chat/completions", methods=CHAT_METHODS)
async def chat_completions(request: Request, handler: OpenAIHandlerDep) -> Response:
    """OpenAI chat completions, buffered or streamed."""
    return await handler.handle(request)


@router.api_route("/messages", methods=CHAT_METHODS)
async def messages(request: Request, handler: AnthropicHandlerDep) -> Response:
    """Anthropic messages, buffered or streamed."""
    return await handler.handle(request)


@router.get("/health", response_model=HealthResponse)
async def health(handler: SystemHandlerDep, port: PortDep) -> HealthResponse:
    """Health check endpoint."""
    return await handler.health(port=port)


@router.get("/stats", response_model=StatsResponse)
async def stats(handler: SystemHandlerDep) -> StatsResponse:
    """Queue, cache and traffic statistics."""
    return handler.stats()


async def root(handler: SystemHandlerDep) -> dict[str, Any]:
    """Root endpoint with API information."""
    return handler.root()


async def cors_middleware(request: Request, call_next) -> Response:
    """Answer preflight requests and add permissive CORS headers to every response."""
    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)

    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors in the OpenAI error shape."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        code, message = "not_found", f"Unknown endpoint: {request.url.path}"
    elif exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        code, message = "method_not_allowed", f"Method {request.method} not allowed"
    else:
        code, message = "error", str(exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content=openai_error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Request error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=openai_error_body("internal_error", str(exc)),
        headers=CORS_HEADERS,
    )


def create_app(
    backend: BackendInvoker | None = None,
    catalog: ModelCatalog | None = None,
    settings_provider: Callable[[], Settings] = get_settings,
    queue: RequestQueue | None = None,
    cache: ResponseCache | None = None,
) -> FastAPI:
    """Create the gateway application.

    Args:
        backend: Model backend. Defaults to Ollama.
        catalog: Model catalog. Defaults to the backend when it can list models.
        settings_provider: Called once per request for current configuration.
        queue: Optional pre-built request queue.
        cache: Optional pre-built response cache.

    Returns:
        Configured FastAPI application
    """
    if backend is None:
        backend = OllamaBackend.create(base_url=settings_provider().ollama_base_url)
    if catalog is None:
        if not isinstance(backend, ModelCatalog):
            raise ValueError("catalog is required when the backend cannot list models")
        catalog = backend

    app = FastAPI(
        title="GateX",
        description="OpenAI- and Anthropic-compatible gateway to a single model backend",
        version=__version__,
        lifespan=lifespan,
    )

    init_state(app, backend, catalog, settings_provider, queue=queue, cache=cache)

    app.middleware("http")(cors_middleware)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.add_api_route("/", root, methods=["GET"])
    app.add_api_route("/v1", root, methods=["GET"])
    app.include_router(router)
    app.include_router(router, prefix="/v1")

    return app


def bind_socket(host: str = "127.0.0.1", port: int = 0) -> socket.socket:
    """Bind the listening socket.

    An explicit port is used as is. Otherwise the first free preferred port
    is taken, falling back to a port the OS assigns.

    Raises:
        OSError: If the explicit port cannot be bound
    """
    candidates = [port] if port else [*PREFERRED_PORTS, 0]
    for candidate in candidates:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.bind((host, candidate))
        except OSError:
            sock.close()
            if candidate == candidates[-1]:
                raise
            continue
        return sock


def run() -> None:
    """Start the gateway with uvicorn."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    sock = bind_socket(settings.host, settings.port)
    port = sock.getsockname()[1]
    app.state.port = port
    logger.info("GateX listening on %s:%d", settings.host, port)

    server = uvicorn.Server(uvicorn.Config(app, host=settings.host, port=port))
    server.run(sockets=[sock])


app = create_app()


if __name__ == "__main__":
    run()
