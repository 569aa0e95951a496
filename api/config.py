"""
Environment-aware configuration.
Token secrets, lifetimes, the expiry sweep interval and the database URL all
come from the environment (or .env).
"""
import os
from dotenv import load_dotenv

from utils.timeutils import parse_duration

load_dotenv()  # Read .env if present

DEV_ACCESS_SECRET = "dev-access-secret-change-me-0123456789abcdef"
DEV_REFRESH_SECRET = "dev-refresh-secret-change-me-0123456789abcdef"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///auth-tokens.db")
    SQLALCHEMY_ECHO = _env_flag("SQLALCHEMY_ECHO", "false")

    # Two independent secrets: a leaked access secret must not forge refresh tokens
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", DEV_ACCESS_SECRET)
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET", DEV_REFRESH_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "auth-token-service")
    ACCESS_TOKEN_EXPIRES = parse_duration(os.getenv("ACCESS_TOKEN_TTL", "30m"))
    REFRESH_TOKEN_EXPIRES = parse_duration(os.getenv("REFRESH_TOKEN_TTL", "30d"))

    TOKEN_SWEEP_INTERVAL = parse_duration(os.getenv("TOKEN_SWEEP_INTERVAL", "1h"))
    TOKEN_SWEEPER_ENABLED = _env_flag("TOKEN_SWEEPER_ENABLED", "true")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    SQLALCHEMY_ECHO = False
    ACCESS_TOKEN_SECRET = "test-access-secret-0123456789abcdef0123456789"
    REFRESH_TOKEN_SECRET = "test-refresh-secret-0123456789abcdef0123456789"
    TOKEN_SWEEPER_ENABLED = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    DATABASE_URL = os.getenv("DATABASE_URL")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    if name:
        name = name.lower()
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


def check_production_config(config) -> None:
    """Refuse to run production with missing, default or shared token secrets."""
    access = config.get("ACCESS_TOKEN_SECRET")
    refresh = config.get("REFRESH_TOKEN_SECRET")
    if not config.get("DATABASE_URL"):
        raise RuntimeError("DATABASE_URL must be set in production")
    if access in (None, "", DEV_ACCESS_SECRET) or refresh in (None, "", DEV_REFRESH_SECRET):
        raise RuntimeError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be set in production")
    if access == refresh:
        raise RuntimeError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
