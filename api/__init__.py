import atexit
from dataclasses import dataclass
import logging

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import ProductionConfig, check_production_config, get_config
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from models.db_storage import DBStorage
from models.identity_store import IdentityStore
from models.token_store import TokenStore
from services.auth_service import AuthService
from services.sweeper import ExpirySweeper
from services.token_lifecycle import TokenLifecycleManager
from utils.security import TokenSigner
from utils.timeutils import parse_duration

logger = logging.getLogger(__name__)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Auth Token Service",
        "version": "1.0.0",
        "description": "Signup, login and refresh-token rotation issuing short-lived access tokens and long-lived refresh tokens.",
    },
    "basePath": "/",  # Blueprints are mounted under /api/v1
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the access token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
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


@dataclass
class TokenServices:
    """Everything the blueprints need, kept on app.extensions["auth_tokens"]."""
    storage: DBStorage
    signer: TokenSigner
    identities: IdentityStore
    tokens: TokenStore
    lifecycle: TokenLifecycleManager
    auth: AuthService
    sweeper: ExpirySweeper


def build_token_services(db: DBStorage, config) -> TokenServices:
    signer = TokenSigner.from_config(config)
    identities = IdentityStore(db)
    tokens = TokenStore(db)
    lifecycle = TokenLifecycleManager(signer, tokens, identities)
    return TokenServices(
        storage=db,
        signer=signer,
        identities=identities,
        tokens=tokens,
        lifecycle=lifecycle,
        auth=AuthService(identities, lifecycle),
        sweeper=ExpirySweeper(tokens, interval=parse_duration(config["TOKEN_SWEEP_INTERVAL"])),
    )


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app, wires the
    token services onto it and, unless disabled, starts the expiry sweeper.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    config_cls = get_config(config_name)
    app.config.from_object(config_cls)
    if overrides:
        app.config.update(overrides)
    if config_cls is ProductionConfig:
        check_production_config(app.config)

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    storage.configure(app.config["DATABASE_URL"], echo=app.config.get("SQLALCHEMY_ECHO", False))
    storage.reload()
    services = build_token_services(storage, app.config)
    app.extensions["auth_tokens"] = services

    if app.config.get("TOKEN_SWEEPER_ENABLED"):
        services.sweeper.start()
        atexit.register(services.sweeper.stop)

    from .health import bp as health_bp
    from .auth import bp as auth_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Auth Token Service",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    logger.info("App created (env=%s)", app.config["APP_ENV"])
    return app
