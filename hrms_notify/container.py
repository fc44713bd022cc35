# hrms_notify/container.py
from dataclasses import dataclass
from typing import Any, Callable

from pywebpush import webpush

from hrms_notify.config import Settings
from hrms_notify.infra.account_repository import AccountRepository
from hrms_notify.infra.subscription_repository import SubscriptionRepository
from hrms_notify.infra.table_client import Tables
from hrms_notify.security.gates import AuthenticationGate
from hrms_notify.services.account_service import AccountService
from hrms_notify.services.event_catalog import EventCatalog
from hrms_notify.services.fanout import FanoutOrchestrator
from hrms_notify.services.notification_store import NotificationStore
from hrms_notify.services.push_delivery import PushDeliveryService
from hrms_notify.services.realtime_bus import RealtimeBus


@dataclass
class Services:
    settings: Settings
    tables: Tables
    accounts: AccountRepository
    subscriptions: SubscriptionRepository
    notifications: NotificationStore
    bus: RealtimeBus
    push: PushDeliveryService
    fanout: FanoutOrchestrator
    catalog: EventCatalog
    auth_gate: AuthenticationGate
    account_service: AccountService


def build_services(
    settings: Settings,
    tables: Tables,
    push_sender: Callable[..., Any] = webpush,
) -> Services:
    """Wires every collaborator explicitly; nothing is a module-level singleton."""
    accounts = AccountRepository(tables.accounts)
    subscriptions = SubscriptionRepository(tables.subscriptions)
    notifications = NotificationStore(tables.notifications, accounts)
    bus = RealtimeBus()
    push = PushDeliveryService(subscriptions, settings, sender=push_sender)
    fanout = FanoutOrchestrator(accounts, notifications, bus, push)
    gate = AuthenticationGate(accounts, settings)
    return Services(
        settings=settings,
        tables=tables,
        accounts=accounts,
        subscriptions=subscriptions,
        notifications=notifications,
        bus=bus,
        push=push,
        fanout=fanout,
        catalog=EventCatalog(fanout, settings),
        auth_gate=gate,
        account_service=AccountService(accounts, subscriptions, gate, bus, settings),
    )
