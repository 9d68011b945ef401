import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent


def _env(name: str, fallback: str = "") -> str:
    """Read an env value, stripping wrapping quotes and leaked escaped newlines."""
    raw = os.getenv(name)
    value = (raw if raw is not None else fallback).strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        value = value[1:-1]
    return value.replace("\\n", "").replace("\\r", "").strip()


def _env_int(name: str, fallback: int) -> int:
    try:
        return int(_env(name, str(fallback)))
    except ValueError:
        return fallback


class Config:
    """应用配置"""
    SECRET_KEY = _env('SECRET_KEY', 'joyeria-secret-key')

    # MongoDB 配置
    # The catalog only talks to MongoDB when MONGO_URI is set in the environment;
    # otherwise it serves the in-memory catalog seeded from DATA_PATH.
    MONGO_URI = _env('MONGO_URI', 'mongodb://localhost:27017/joyeria')

    # Seed file for the in-memory catalog (JSON list of products)
    DATA_PATH = _env('DATA_PATH', str(Path(__file__).parent / 'data' / 'products.json'))

    # API 配置
    API_PREFIX = '/api/v1'

    # CORS allowlist (comma-separated origins)
    # Example:
    # CORS_ALLOWED_ORIGINS=https://joyeria.cl,https://www.joyeria.cl
    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in _env('CORS_ALLOWED_ORIGINS').split(',')
        if origin.strip()
    ]

    # Flask 环境
    FLASK_ENV = _env('FLASK_ENV', 'development')
    LOG_LEVEL = _env('LOG_LEVEL', 'INFO').upper()

    RATE_LIMIT_PER_MINUTE = _env_int('RATE_LIMIT_PER_MINUTE', 100)

    # Catalog defaults
    DEFAULT_PER_PAGE = 10
    RELATED_PRODUCTS_LIMIT = 6

    # Bearer token for admin routes; admin routes are open when unset
    ADMIN_API_TOKEN = _env('ADMIN_API_TOKEN') or None


class TestConfig(Config):
    TESTING = True
    RATE_LIMIT_PER_MINUTE = 10_000
    ADMIN_API_TOKEN = None
