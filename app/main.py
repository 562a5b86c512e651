import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes_api import router as api_router
from app.core.auth import BasicAuthMiddleware
from app.core.config import get_settings
from app.core.exceptions import CatalogError
from app.providers import ProviderRegistry, register_provider
from app.providers.base import ProviderClient
from app.providers.catalog import PROVIDER_CONFIGS
from app.services.token_cache import get_token_cache

load_dotenv()

settings = get_settings()
logging.basicConfig(
    level=logging.DEBUG if settings.debug else settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    """Application lifespan context manager."""
    try:
        yield
    finally:
        # Teardown providers
        for provider in ProviderRegistry.all():
            if hasattr(provider, "aclose"):
                try:
                    await provider.aclose()
                except Exception as e:
                    logger.error(f"Error closing provider {provider.name}: {e}")
        try:
            await get_token_cache().aclose()
        except Exception as e:
            logger.error(f"Error closing token cache session: {e}")


app = FastAPI(
    title="Catalogarr",
    description="Unified search and metadata across mirror streaming catalogs",
    version="0.1.0",
    lifespan=app_lifespan,
)

app.add_middleware(BasicAuthMiddleware)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": message}
    )


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return _error_response(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(500, "Internal server error")


# Register providers, sharing one session cookie cache
token_cache = get_token_cache()
for config in PROVIDER_CONFIGS:
    register_provider(ProviderClient(config, token_cache))

# Include routers
app.include_router(api_router, prefix="/api")
