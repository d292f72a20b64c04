from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vcwallet.api.router import router as credentials_router
from vcwallet.config import Settings, settings as default_settings
from vcwallet.credentials.service import CredentialService
from vcwallet.crypto.keys import KeyManager
from vcwallet.exceptions import InvalidInputError, NotFoundError, StorageError
from vcwallet.logging import get_logger, request_id_middleware
from vcwallet.storage.store import CredentialStore

logger = get_logger(__name__)


def _error_response(status_code: int, message, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"statusCode": status_code, "message": message, "error": error},
    )

def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        return _error_response(status.HTTP_400_BAD_REQUEST, str(exc), "Bad Request")

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
        return _error_response(status.HTTP_400_BAD_REQUEST, messages, "Bad Request")

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error_response(status.HTTP_404_NOT_FOUND, str(exc), "Not Found")

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(f"Storage failure: {exc}")
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to persist credentials", "Internal Server Error")

def create_app(
    app_settings: Optional[Settings] = None,
    key_manager: Optional[KeyManager] = None,
    store: Optional[CredentialStore] = None,
) -> FastAPI:
    """
    Creates and configures the FastAPI application instance.

    The issuer key manager and the credential store are created from settings unless
    given. Both are initialized in the application lifespan, before any request is
    served; a failure there (e.g. an unreadable issuer key file) aborts startup.

    Returns:
        FastAPI: The configured FastAPI application instance.
    """
    app_settings = app_settings or default_settings
    key_manager = key_manager or KeyManager(key_file=app_settings.issuer_key_file)
    store = store or CredentialStore(app_settings.credentials_file)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        key_manager.initialize()
        store.path.parent.mkdir(parents=True, exist_ok=True)
        loaded = store.load()
        app.state.credential_service = CredentialService(
            key_manager,
            store,
            enforce_expiration=app_settings.enforce_expiration,
        )
        logger.info(f"{app_settings.app_name} ready: issuer {key_manager.issuer_did()}, {loaded} credentials loaded")
        yield

    app = FastAPI(
        title=app_settings.app_name,
        description="API for issuing, managing, and verifying W3C Verifiable Credentials",
        debug=app_settings.debug,
        lifespan=lifespan,
        docs_url=f"{app_settings.api_prefix}/docs",
        openapi_url=f"{app_settings.api_prefix}/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        # credentials only for an explicit origin list
        allow_credentials="*" not in app_settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE", "PUT", "PATCH"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """Middleware to add a unique request ID to each incoming request and log it."""
        request_id: str = request_id_middleware(request)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    _register_exception_handlers(app)
    app.include_router(credentials_router, prefix=app_settings.api_prefix)

    @app.get("/health", tags=["Health Check"])
    async def health_check():
        logger.info("Health check endpoint was called.")
        return {
            "status": "ok",
            "app_name": app_settings.app_name,
            "issuer": key_manager.issuer_did() if key_manager.initialized else None,
        }

    return app

app = create_app()
