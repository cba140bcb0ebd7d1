# payroll_api/config.py
"""
Config objects for ``create_app(config_object=...)``.

create_app already sets sane defaults from the environment; these classes only
override what differs per deployment, e.g.::

    create_app("payroll_api.config.ProductionConfig")
"""
import os
from datetime import timedelta

DEFAULT_JWT_SECRET = "dev-jwt-secret"


class Config:
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", DEFAULT_JWT_SECRET)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    JWT_DECODE_LEEWAY = 120
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    # exposes the DB clock on /api/health
    EXPOSE_DB_TIME = True


class DevelopmentConfig(Config):
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-for-hs256"


class ProductionConfig(Config):
    EXPOSE_DB_TIME = False
    # create_app refuses to start on the dev secret when this is set
    REQUIRE_JWT_SECRET = True
