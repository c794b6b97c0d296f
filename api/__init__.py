import logging
from typing import Callable, Optional

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config, DEFAULT_JWT_SECRET
from .errors import register_error_handlers
from models.db_storage import DBStorage
from services.authenticator import PasswordAuthenticator
from services.token_service import TokenService
from utils.security import TokenCodec

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Token Service API",
        "version": "1.0.0",
        "description": "Issues, validates, rotates and revokes access/refresh token pairs.",
    },
    "basePath": "/",
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def create_app(
    config_name: str | None = None,
    config_overrides: Optional[dict] = None,
    clock: Optional[Callable[[], float]] = None,
) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    Storage, authenticator, codec and token service are built here from the
    app config and kept in app.extensions, so every app (and every test) gets
    its own secret and database.
    """
    app = Flask(__name__)

    app.config.from_object(get_config(config_name))
    if config_overrides:
        app.config.update(config_overrides)

    if app.config.get("REQUIRE_STRONG_SECRET") and app.config["JWT_SECRET"] == DEFAULT_JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set in production")
    if not app.config.get("DATABASE_URL"):
        raise RuntimeError("DATABASE_URL is not configured")

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    logging.getLogger("services").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        expose_headers=["Authorization", "Refresh-Authorization", "WWW-Authenticate"],
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    storage = DBStorage(app.config["DATABASE_URL"], echo=app.config.get("DATABASE_ECHO", False))
    storage.reload()
    authenticator = PasswordAuthenticator(storage)
    token_service = TokenService(
        store=storage,
        authenticator=authenticator,
        codec=TokenCodec(app.config["JWT_SECRET"], app.config["JWT_ALGORITHM"]),
        access_ttl=app.config["ACCESS_TOKEN_EXPIRES"],
        refresh_ttl=app.config["REFRESH_TOKEN_EXPIRES"],
        clock=clock,
    )
    app.extensions["storage"] = storage
    app.extensions["authenticator"] = authenticator
    app.extensions["token_service"] = token_service

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Token Service API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
