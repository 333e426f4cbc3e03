# backend/foamstock/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/foamstock.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///foamstock.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get("FRONTEND_URL", "http://localhost:3000").split(",")
        if origin.strip()
    ]

    # Cookie set by the web frontend's auth layer; accepted alongside bearer tokens
    AUTH_COOKIE_NAME = os.environ.get("AUTH_COOKIE_NAME", "authjs.session-token")

    SALE_RETRY_ATTEMPTS = int(os.environ.get("SALE_RETRY_ATTEMPTS", "3"))

    BCRYPT_ROUNDS = 12


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"
    SALE_RETRY_ATTEMPTS = 2
    BCRYPT_ROUNDS = 4
