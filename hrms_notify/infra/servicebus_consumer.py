# hrms_notify/infra/servicebus_consumer.py
import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from azure.servicebus import TransportType
from azure.servicebus.aio import ServiceBusClient, ServiceBusReceiver
from azure.servicebus.exceptions import ServiceBusError
from pydantic import ValidationError

from hrms_notify.config import Settings
from hrms_notify.core.exceptions import ValidationFailed
from hrms_notify.models.queue_message import QueueMessage
from hrms_notify.services.event_catalog import EventCatalog

logger = logging.getLogger(__name__)

MAX_BACKOFF = 60


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ServiceBusConsumer:
    """
    Async Azure Service Bus consumer:
      - AMQP over WebSocket (443) so it works behind App Service.
      - Reads fan-out requests written by domain writers after their commit
        and hands them to the event catalog.
      - Completes a message once dispatched, dead-letters one that can never
        be parsed, abandons it (redelivery) on anything unexpected.
      - Reconnects with backoff if the connection drops.
    """

    def __init__(self, catalog: EventCatalog, settings: Settings):
        self.catalog = catalog
        self.settings = settings
        self._status = {
            "startedAt": None,
            "lastMessageAt": None,
            "lastError": None,
            "processed": 0,
            "deadLettered": 0,
            "queue": settings.service_bus_queue,
            "hasConnectionString": bool(settings.service_bus_connection_string),
        }

    def status(self) -> dict:
        return dict(self._status)

    async def run(self) -> None:
        if not self.settings.service_bus_connection_string:
            logger.warning("AZURE_SERVICE_BUS_CONNECTION_STRING not set, queue will not be consumed")
            return
        if not self.settings.service_bus_queue:
            logger.warning("AZURE_SERVICE_BUS_QUEUE_NAME not set, queue will not be consumed")
            return

        self._status["startedAt"] = _now()
        backoff = 5

        while True:
            try:
                logger.info("connecting to Service Bus queue %s over WebSockets", self.settings.service_bus_queue)
                async with ServiceBusClient.from_connection_string(
                    self.settings.service_bus_connection_string,
                    transport_type=TransportType.AmqpOverWebsocket,
                ) as sb_client:
                    receiver = sb_client.get_queue_receiver(
                        queue_name=self.settings.service_bus_queue,
                        max_wait_time=20,
                    )
                    async with receiver:
                        logger.info("listening on queue %s", self.settings.service_bus_queue)
                        backoff = 5
                        while True:
                            messages = await receiver.receive_messages(
                                max_message_count=10,
                                max_wait_time=10,
                            )
                            if not messages:
                                await asyncio.sleep(0.5)
                                continue
                            for msg in messages:
                                await self.handle(receiver, msg)

                await asyncio.sleep(1)

            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._status["lastError"] = repr(e)
                logger.warning("Service Bus connection error, retrying in %ss: %r", backoff, e)
                await asyncio.sleep(backoff)
                backoff = min(MAX_BACKOFF, backoff * 2)

    def parse(self, msg: Any) -> QueueMessage:
        body = msg.body
        if not isinstance(body, (bytes, str)):
            # body arrives as an iterator of byte sections
            body = b"".join(part for part in body)
        return QueueMessage.model_validate(json.loads(body))

    async def handle(self, receiver: ServiceBusReceiver, msg: Any) -> Optional[bool]:
        try:
            payload = self.parse(msg)
        except (ValueError, ValidationError) as e:
            logger.warning("dead-lettering unreadable message: %s", e)
            if await self._settle("dead-letter", receiver.dead_letter_message, msg,
                                  reason="unparseable", error_description=str(e)[:1000]):
                self._status["deadLettered"] += 1
            return None

        try:
            await self.catalog.dispatch(
                payload.type,
                entity=payload.entity,
                recipient_id=payload.userId,
                title=payload.title,
                message=payload.message,
                data=payload.data,
            )
        except ValidationFailed as e:
            logger.warning("dead-lettering %s: %s", payload.type, e.message)
            if await self._settle("dead-letter", receiver.dead_letter_message, msg,
                                  reason="invalid", error_description=e.message):
                self._status["deadLettered"] += 1
            return None
        except Exception as e:
            # not completed -> redelivered (or dead-lettered by MaxDeliveryCount)
            logger.exception("error processing %s", payload.type)
            self._status["lastError"] = repr(e)
            await self._settle("abandon", receiver.abandon_message, msg)
            return False

        if await self._settle("complete", receiver.complete_message, msg):
            self._status["processed"] += 1
            self._status["lastMessageAt"] = _now()
        return True

    async def _settle(self, action: str, settle, msg: Any, **kwargs) -> bool:
        # a lost lock only affects this message; the receiver keeps going
        try:
            await settle(msg, **kwargs)
            return True
        except ServiceBusError as e:
            logger.warning("could not %s message %s: %r", action, getattr(msg, "message_id", None), e)
            self._status["lastError"] = repr(e)
            return False
