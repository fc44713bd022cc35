# hrms_notify/services/push_delivery.py
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from pywebpush import WebPushException, webpush

from hrms_notify.config import Settings
from hrms_notify.infra.subscription_repository import SubscriptionRepository
from hrms_notify.models.push_subscription import PushSubscription

logger = logging.getLogger(__name__)

# push services answer 410 Gone (404 on some vendors) for an endpoint the
# browser has dropped; nothing else removes a subscription
GONE_STATUSES = frozenset({404, 410})

SENT = "sent"
PRUNED = "pruned"
FAILED = "failed"


@dataclass
class DeliveryReport:
    sent: int = 0
    pruned: int = 0
    failed: int = 0

    @property
    def attempts(self) -> int:
        return self.sent + self.pruned + self.failed

    def add(self, outcome: str) -> None:
        setattr(self, outcome, getattr(self, outcome) + 1)

    def merge(self, other: "DeliveryReport") -> None:
        self.sent += other.sent
        self.pruned += other.pruned
        self.failed += other.failed


class PushDeliveryService:
    """
    Best-effort web push. Every endpoint is sent to independently; a gone
    endpoint is removed, any other failure is logged and forgotten.
    """

    def __init__(
        self,
        subscriptions: SubscriptionRepository,
        settings: Settings,
        sender: Callable[..., Any] = webpush,
    ):
        self.subscriptions = subscriptions
        self.settings = settings
        self.sender = sender
        if not settings.push_enabled:
            logger.warning("VAPID_PRIVATE_KEY not set, web push delivery is disabled")

    def build_payload(
        self,
        title: str,
        body: str,
        noti_type: str,
        entity_id: Optional[str] = None,
        url: Optional[str] = None,
    ) -> Dict[str, Any]:
        return {
            "title": title,
            "body": body,
            "icon": self.settings.push_icon,
            "badge": self.settings.push_badge,
            "url": url or self.settings.push_base_url,
            "data": {"entityId": entity_id, "type": noti_type},
        }

    def _send(self, sub: PushSubscription, body: str) -> None:
        # runs in a worker thread; the timeout bounds the HTTP call itself
        self.sender(
            subscription_info=sub.subscription_info(),
            data=body,
            vapid_private_key=self.settings.vapid_private_key,
            vapid_claims={"sub": self.settings.vapid_subject},
            ttl=self.settings.push_ttl_seconds,
            timeout=self.settings.push_timeout_seconds,
        )

    async def _send_one(self, sub: PushSubscription, body: str) -> str:
        try:
            await asyncio.to_thread(self._send, sub, body)
        except WebPushException as e:
            status = getattr(e.response, "status_code", None)
            if status in GONE_STATUSES:
                await self.subscriptions.remove(sub.account_id, sub.endpoint)
                logger.info("pruned gone push endpoint for %s (HTTP %s)", sub.account_id, status)
                return PRUNED
            logger.warning("push to %s failed (HTTP %s): %s", sub.account_id, status, e)
            return FAILED
        except Exception as e:
            # timeouts and connection errors are transient, the endpoint stays
            logger.warning("push to %s failed: %r", sub.account_id, e)
            return FAILED
        return SENT

    async def deliver_to_user(self, account_id: str, payload: Dict[str, Any]) -> DeliveryReport:
        report = DeliveryReport()
        if not self.settings.push_enabled:
            return report

        subs = await self.subscriptions.list_for(account_id)
        if not subs:
            return report

        body = json.dumps(payload, default=str)
        outcomes = await asyncio.gather(
            *(self._send_one(sub, body) for sub in subs), return_exceptions=True
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                # e.g. the prune itself failed
                logger.warning("push bookkeeping for %s failed: %r", account_id, outcome)
                report.add(FAILED)
            else:
                report.add(outcome)
        return report

    async def deliver_to_many(
        self, account_ids: Iterable[str], payload: Dict[str, Any]
    ) -> DeliveryReport:
        """Settles every account's delivery; never raises for a single failure."""
        total = DeliveryReport()
        ids = list(account_ids)
        results = await asyncio.gather(
            *(self.deliver_to_user(account_id, payload) for account_id in ids),
            return_exceptions=True,
        )
        for account_id, result in zip(ids, results):
            if isinstance(result, BaseException):
                logger.warning("push delivery to %s failed: %r", account_id, result)
                continue
            total.merge(result)
        return total
