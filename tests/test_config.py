from datetime import timedelta

import pytest

from api import create_app
from api.config import (
    DEV_ACCESS_SECRET,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    check_production_config,
    get_config,
)


def test_get_config_by_name():
    assert get_config("prod") is ProductionConfig
    assert get_config("Production") is ProductionConfig
    assert get_config("testing") is TestingConfig
    assert get_config("dev") is DevelopmentConfig


def test_default_lifetimes():
    assert TestingConfig.ACCESS_TOKEN_EXPIRES == timedelta(minutes=30)
    assert TestingConfig.REFRESH_TOKEN_EXPIRES == timedelta(days=30)
    assert TestingConfig.TOKEN_SWEEP_INTERVAL == timedelta(hours=1)


@pytest.mark.parametrize(
    "access, refresh",
    [
        (DEV_ACCESS_SECRET, "prod-refresh-secret-0123456789abcdef"),
        ("", "prod-refresh-secret-0123456789abcdef"),
        ("shared-secret-0123456789abcdef0123", "shared-secret-0123456789abcdef0123"),
    ],
)
def test_production_refuses_weak_secrets(access, refresh):
    config = {
        "DATABASE_URL": "postgresql://db/auth",
        "ACCESS_TOKEN_SECRET": access,
        "REFRESH_TOKEN_SECRET": refresh,
    }
    with pytest.raises(RuntimeError):
        check_production_config(config)


def test_production_requires_database_url():
    with pytest.raises(RuntimeError):
        check_production_config(
            {
                "DATABASE_URL": None,
                "ACCESS_TOKEN_SECRET": "prod-access-secret-0123456789abcdef",
                "REFRESH_TOKEN_SECRET": "prod-refresh-secret-0123456789abcdef",
            }
        )


def test_overrides_reach_the_signer():
    app = create_app("testing", overrides={"ACCESS_TOKEN_EXPIRES": "5m", "TOKEN_SWEEP_INTERVAL": "10m"})
    services = app.extensions["auth_tokens"]
    assert services.signer.ttl("access") == timedelta(minutes=5)
    assert services.sweeper.interval == timedelta(minutes=10)
