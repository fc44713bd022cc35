# hrms_notify/services/fanout.py
"""
Fan-out of a committed domain change to three channels:

  store     -> one NotificationRecord per recipient
  realtime  -> room event (single recipient) or global event (broadcast)
  push      -> web push to every audience account with subscriptions

The channels run side by side and each one is guarded: a failure is logged
and recorded in the result, never raised. Callers invoke notify_event only
after their own write has committed.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, List, Optional

from fastapi.encoders import jsonable_encoder

from hrms_notify.infra.account_repository import AccountRepository
from hrms_notify.models.account import Account
from hrms_notify.services.notification_store import NotificationStore
from hrms_notify.services.push_delivery import DeliveryReport, PushDeliveryService
from hrms_notify.services.realtime_bus import RealtimeBus

logger = logging.getLogger(__name__)

NOTIFICATION_EVENT = "notification"

STORE = "store"
REALTIME = "realtime"
PUSH = "push"
PAYLOAD = "payload"


@dataclass(frozen=True)
class Scope:
    """Who an event is for: one account, or every active account."""

    recipient_id: Optional[str] = None

    @classmethod
    def single(cls, account_id: str) -> "Scope":
        if not account_id:
            raise ValueError("single-recipient scope needs an account id")
        return cls(recipient_id=account_id)

    @classmethod
    def all_active(cls) -> "Scope":
        return cls()

    @property
    def is_broadcast(self) -> bool:
        return self.recipient_id is None


@dataclass
class FanoutResult:
    audience: int = 0
    stored: int = 0
    published: int = 0
    push: DeliveryReport = field(default_factory=DeliveryReport)
    failed: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class FanoutOrchestrator:
    def __init__(
        self,
        accounts: AccountRepository,
        store: NotificationStore,
        bus: RealtimeBus,
        push: PushDeliveryService,
    ):
        self.accounts = accounts
        self.store = store
        self.bus = bus
        self.push = push

    async def notify_event(
        self,
        scope: Scope,
        noti_type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        *,
        event_name: str = NOTIFICATION_EVENT,
        url: Optional[str] = None,
    ) -> FanoutResult:
        result = FanoutResult()
        try:
            data = jsonable_encoder(data or {})
        except Exception:
            logger.exception("could not encode data for %s", noti_type)
            result.failed.append(PAYLOAD)
            data = {}

        # 1. audience, read once for the whole call
        try:
            audience = await self._resolve(scope)
        except Exception:
            logger.exception("could not resolve audience for %s", noti_type)
            result.failed.append("audience")
            return result
        result.audience = len(audience)
        if not audience:
            logger.info("no recipients for %s", noti_type)
            return result

        # 2. the three channels, independently
        realtime_payload = {
            "type": noti_type,
            "title": title,
            "message": message,
            "data": data,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        try:
            entity_id = _entity_id(data)
        except Exception:
            logger.exception("could not read an entity id for %s", noti_type)
            result.failed.append(PAYLOAD)
            entity_id = None
        push_payload = self.push.build_payload(title, message, noti_type, entity_id=entity_id, url=url)

        await asyncio.gather(
            self._guard(STORE, noti_type, result, self._persist(scope, audience, noti_type, title, message, data, result)),
            self._guard(REALTIME, noti_type, result, self._publish(scope, event_name, realtime_payload, result)),
            self._guard(PUSH, noti_type, result, self._deliver(audience, push_payload, result)),
        )
        return result

    def publish_list_event(self, event_name: str, payload: Any) -> int:
        """Global list-level event (e.g. "ticket-created"), no persistence or push."""
        try:
            return self.bus.broadcast_global(event_name, jsonable_encoder(payload))
        except Exception:
            logger.exception("list event %s was not published", event_name)
            return 0

    async def _resolve(self, scope: Scope) -> List[Account]:
        if scope.is_broadcast:
            return await self.accounts.list_active()
        account = await self.accounts.get(scope.recipient_id)
        if account is None or account.is_deleted:
            logger.warning("recipient %s not found or deleted", scope.recipient_id)
            return []
        return [account]

    async def _guard(self, channel: str, noti_type: str, result: FanoutResult, work: Awaitable) -> None:
        try:
            await work
        except Exception:
            logger.exception("%s channel failed for %s", channel, noti_type)
            result.failed.append(channel)

    async def _persist(self, scope, audience, noti_type, title, message, data, result) -> None:
        if scope.is_broadcast:
            result.stored = await self.store.create_for_accounts(audience, noti_type, title, message, data)
        else:
            await self.store.create_for_user(scope.recipient_id, noti_type, title, message, data)
            result.stored = 1

    async def _publish(self, scope, event_name, payload, result) -> None:
        if scope.is_broadcast:
            result.published = self.bus.broadcast_global(event_name, payload)
        else:
            result.published = self.bus.broadcast_to_room(scope.recipient_id, event_name, payload)

    async def _deliver(self, audience, payload, result) -> None:
        result.push = await self.push.deliver_to_many([a.id for a in audience], payload)


def _entity_id(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    for key in ("entityId", "id", "_id"):
        if data.get(key):
            return str(data[key])
    for key, value in data.items():
        if str(key).endswith("Id") and value:
            return str(value)
    return None
