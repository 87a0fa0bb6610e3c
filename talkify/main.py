"""
main.py
--------

Entry point of the Talkify API.

Startup is linear: load config -> connect DB -> init encryption -> construct
handlers -> register routes -> start listening. Any failure along the way is
logged and ends the process before the listener opens.

Modules:
    - talkify.handlers: user, conversation and message routes under /api
    - talkify.middleware: request logging and panic recovery
"""

from typing import Optional

import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from talkify.config import Config, ConfigError, ServerConfig, load_config
from talkify.crypto import EncryptionManager, InvalidKeyError, KeyFileError, KeyManager
from talkify.database.connection import Database, DatabaseConnectionError, connect
from talkify.errors import APIError
from talkify.handlers import Handler
from talkify.middleware import recovery_middleware, request_logger_middleware
from talkify.utils.logger_config import app_logger, fatal, init_logger, log_info

SWAGGER_INDEX_URL = "/swagger/index.html"
SWAGGER_SPEC_URL = "/swagger/doc.json"

ALLOWED_HEADERS = [
    "Content-Type", "Content-Length", "Accept-Encoding", "X-CSRF-Token", "Authorization",
    "X-User-ID", "Accept", "Origin", "Cache-Control", "X-Requested-With",
]

DESCRIPTION = "A modern chat application API with support for direct messages and group chats."


async def api_error_handler(request: Request, exc: APIError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


# ======================================================
# Application
# ======================================================
def create_app(database: Database, encryptor: Optional[EncryptionManager] = None,
               config: Optional[Config] = None) -> FastAPI:
    """Builds the FastAPI application around an open database and optional encryptor."""
    config = config or Config()

    app = FastAPI(
        title="Talkify API",
        description=DESCRIPTION,
        version="1.0.0",
        contact={"name": "API Support", "email": "support@talkify.com"},
        license_info={"name": "MIT", "url": "https://opensource.org/licenses/MIT"},
        docs_url=None,
        redoc_url=None,
        openapi_url=SWAGGER_SPEC_URL,
    )
    app.state.database = database

    # Added innermost first: recovery, request logging, CORS
    app.middleware("http")(recovery_middleware)
    app.middleware("http")(request_logger_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["POST", "OPTIONS", "GET", "PUT", "DELETE"],
        allow_headers=ALLOWED_HEADERS,
    )
    app.add_exception_handler(APIError, api_error_handler)

    h = Handler(database, encryptor)

    api = APIRouter(prefix="/api")

    users = APIRouter(prefix="/users", tags=["Users"])
    h.register_user_routes(users)
    conversations = APIRouter(prefix="/conversations", tags=["Conversations"])
    h.register_conversation_routes(conversations)
    messages = APIRouter(prefix="/messages", tags=["Messages"])
    h.register_message_routes(messages)

    @api.get("/health", tags=["Health"])
    def health():
        if database.ping():
            return {"status": "ok", "database": "up"}
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "down"})

    api.include_router(users)
    api.include_router(conversations)
    api.include_router(messages)
    app.include_router(api)

    @app.get("/", include_in_schema=False)
    async def root():
        return {"message": "Talkify API", "docs": SWAGGER_INDEX_URL}

    # Swagger documentation
    @app.get(SWAGGER_INDEX_URL, include_in_schema=False)
    async def swagger_index():
        return get_swagger_ui_html(openapi_url=SWAGGER_SPEC_URL, title="Talkify API - Swagger UI")

    @app.get("/swagger", include_in_schema=False)
    @app.get("/swagger/{rest:path}", include_in_schema=False)
    async def swagger_redirect(rest: str = ""):
        return RedirectResponse(SWAGGER_INDEX_URL)

    return app


# ======================================================
# Server
# ======================================================
def serve(app: FastAPI, server: ServerConfig) -> None:
    """Runs uvicorn until SIGINT/SIGTERM, allowing 5 seconds for in-flight requests."""
    log_info(app_logger, "Server starting", port=server.port, mode=server.environment)
    try:
        uvicorn.run(
            app,
            host=server.host,
            port=server.port,
            log_config=None,
            timeout_graceful_shutdown=5,
        )
    except SystemExit as e:
        if e.code:
            fatal("Failed to start server", fields={"port": server.port, "code": e.code})
        raise
    app_logger.info("Server exiting")


def main() -> None:
    try:
        config = load_config()
    except ConfigError as e:
        init_logger(development=True)
        fatal("Failed to load config", e)

    init_logger(config.server.development, config.logging.level, config.logging.directory)

    try:
        database = connect(config.database.dsn(), config.database.pool_size)
    except DatabaseConnectionError as e:
        fatal("Failed to connect to database", e, {"dsn": config.database.masked_dsn()})

    with database:
        log_info(
            app_logger,
            "Successfully connected to database",
            host=config.database.host,
            port=config.database.port,
            name=config.database.dbname,
        )
        try:
            database.ensure_schema()
        except SQLAlchemyError as e:
            fatal("Failed to prepare database schema", e)

        encryptor = None
        if config.encryption.enabled:
            try:
                key_manager = KeyManager(config.encryption.key_file)
            except KeyFileError as e:
                fatal("Failed to initialize key manager", e, {"keyFile": config.encryption.key_file})
            try:
                encryptor = EncryptionManager(key_manager.get_key())
            except InvalidKeyError as e:
                fatal("Failed to initialize encryption manager", e)
            app_logger.info("Successfully initialized encryption manager")
        else:
            app_logger.warning("Encryption disabled, content is stored in plaintext")

        app = create_app(database, encryptor, config)
        serve(app, config.server)


if __name__ == "__main__":
    main()
