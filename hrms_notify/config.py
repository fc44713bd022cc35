# hrms_notify/config.py
import os
from typing import List, Optional

from pydantic import BaseModel


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Settings(BaseModel):
    # tokens
    jwt_secret: str = "change-me"
    jwt_alg: str = "HS256"
    access_token_days: int = 7
    refresh_token_days: int = 30

    # Table Storage
    storage_connection_string: Optional[str] = None
    accounts_table: str = "accounts"
    subscriptions_table: str = "pushsubscriptions"
    notifications_table: str = "notifications"

    # Service Bus
    service_bus_connection_string: Optional[str] = None
    service_bus_queue: str = "notifications-queue"

    # web push
    vapid_public_key: Optional[str] = None
    vapid_private_key: Optional[str] = None
    vapid_subject: str = "mailto:admin@example.com"
    push_timeout_seconds: float = 10.0
    push_ttl_seconds: int = 86400
    push_icon: str = "/icons/icon-192x192.png"
    push_badge: str = "/icons/badge-72x72.png"
    push_base_url: str = "/"

    notification_retention_days: int = 30
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    @property
    def push_enabled(self) -> bool:
        return bool(self.vapid_private_key)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            jwt_secret=os.getenv("JWT_SECRET", "change-me"),
            jwt_alg=os.getenv("JWT_ALG", "HS256"),
            access_token_days=_env_int("ACCESS_TOKEN_DAYS", 7),
            refresh_token_days=_env_int("REFRESH_TOKEN_DAYS", 30),
            storage_connection_string=os.getenv("AZURE_STORAGE_CONNECTION_STRING"),
            accounts_table=os.getenv("ACCOUNTS_TABLE", "accounts"),
            subscriptions_table=os.getenv("SUBSCRIPTIONS_TABLE", "pushsubscriptions"),
            notifications_table=os.getenv("NOTIFICATIONS_TABLE", "notifications"),
            service_bus_connection_string=os.getenv("AZURE_SERVICE_BUS_CONNECTION_STRING"),
            service_bus_queue=os.getenv("AZURE_SERVICE_BUS_QUEUE_NAME", "notifications-queue"),
            vapid_public_key=os.getenv("VAPID_PUBLIC_KEY"),
            vapid_private_key=os.getenv("VAPID_PRIVATE_KEY"),
            vapid_subject=os.getenv("VAPID_SUBJECT", "mailto:admin@example.com"),
            push_timeout_seconds=float(os.getenv("PUSH_TIMEOUT_SECONDS", "10")),
            push_ttl_seconds=_env_int("PUSH_TTL_SECONDS", 86400),
            push_icon=os.getenv("PUSH_ICON", "/icons/icon-192x192.png"),
            push_badge=os.getenv("PUSH_BADGE", "/icons/badge-72x72.png"),
            push_base_url=os.getenv("PUSH_BASE_URL", "/"),
            notification_retention_days=_env_int("NOTIFICATION_RETENTION_DAYS", 30),
            cors_origins=_env_list("CORS_ORIGINS", "*"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
