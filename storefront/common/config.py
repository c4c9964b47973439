import os
from dataclasses import dataclass


def _get_bool(env_name: str, default: bool = False) -> bool:
    val = os.getenv(env_name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_list(env_name: str, default: str) -> tuple:
    raw = os.getenv(env_name, default)
    return tuple(part.strip().lower() for part in raw.split(",") if part.strip())


@dataclass
class Settings:
    # App
    APP_HOST: str = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT: int = int(os.getenv("APP_PORT", "8000"))
    INSTANCE_ID: str = os.getenv("INSTANCE_ID", "unknown")
    # Which services this process serves: any of identity, products, orders
    SERVICES: tuple = _get_list("SERVICES", "identity,products,orders")

    # Database (SQLite by default in a Docker volume)
    DB_URL: str = os.getenv("DB_URL", "sqlite+aiosqlite:////data/data.db")
    DB_ECHO: bool = _get_bool("DB_ECHO", False)

    # Tokens
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-me-in-production-0123456789abcdef")
    JWT_ISSUER: str = os.getenv("JWT_ISSUER", "storefront-identity")
    JWT_AUDIENCE: str = os.getenv("JWT_AUDIENCE", "storefront")
    JWT_EXPIRY_DAYS: int = int(os.getenv("JWT_EXPIRY_DAYS", "7"))

    # Redis
    REDIS_HOST: str = os.getenv("REDIS_HOST", "redis")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_USERNAME: str = os.getenv("REDIS_USERNAME", "")
    REDIS_PASSWORD: str = os.getenv("REDIS_PASSWORD", "")
    REDIS_SSL: bool = _get_bool("REDIS_SSL", False)
    REDIS_STOCK_CHANNEL: str = os.getenv("REDIS_STOCK_CHANNEL", "stock-updates")

    # Kafka
    KAFKA_BOOTSTRAP_SERVERS: str = os.getenv("KAFKA_BOOTSTRAP_SERVERS", "kafka:9092")
    KAFKA_START_ATTEMPTS: int = int(os.getenv("KAFKA_START_ATTEMPTS", "3"))
    # Seconds to skip producer start attempts after they all failed
    KAFKA_RETRY_COOLDOWN: float = float(os.getenv("KAFKA_RETRY_COOLDOWN", "30"))
    PRODUCT_EVENTS_TOPIC: str = os.getenv("PRODUCT_EVENTS_TOPIC", "product-events")
    ORDER_EVENTS_TOPIC: str = os.getenv("ORDER_EVENTS_TOPIC", "order-events")

    # Pagination
    DEFAULT_PAGE_LIMIT: int = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))
    MAX_PAGE_LIMIT: int = int(os.getenv("MAX_PAGE_LIMIT", "100"))

    # Seeding
    SEED_ADMIN_USERNAME: str = os.getenv("SEED_ADMIN_USERNAME", "admin")
    SEED_ADMIN_EMAIL: str = os.getenv("SEED_ADMIN_EMAIL", "admin@storefront.local")
    SEED_ADMIN_PASSWORD: str = os.getenv("SEED_ADMIN_PASSWORD", "admin")


settings = Settings()
