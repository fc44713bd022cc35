# hrms_notify/models/push_subscription.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class PushKeys(BaseModel):
    p256dh: str     # client public key
    auth: str       # auth secret


class PushSubscriptionIn(BaseModel):
    """Shape produced by the browser's PushSubscription.toJSON()."""
    endpoint: str
    keys: PushKeys


class UnsubscribeIn(BaseModel):
    endpoint: str


class PushSubscription(BaseModel):
    account_id: str
    endpoint: str
    keys: PushKeys
    created_at: Optional[datetime] = None

    def subscription_info(self) -> dict:
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.keys.p256dh, "auth": self.keys.auth},
        }
