# hrms_notify/services/event_catalog.py
from dataclasses import dataclass
from typing import Any, Dict, Optional

from hrms_notify.config import Settings
from hrms_notify.core.exceptions import ValidationFailed
from hrms_notify.services.fanout import FanoutOrchestrator, FanoutResult, Scope


@dataclass(frozen=True)
class EventSpec:
    broadcast: bool
    title: str
    message: str                      # str.format template over the entity
    path: str = ""
    list_event: Optional[str] = None  # global list-level socket event


GENERIC = EventSpec(
    broadcast=False,
    title="Notification",
    message="You have a new notification.",
)

CATALOG: Dict[str, EventSpec] = {
    "holiday_added": EventSpec(True, "New holiday", "Holiday added: {name} on {date}", "holidays", "holiday-created"),
    "holiday_updated": EventSpec(True, "Holiday updated", "Holiday updated: {name}", "holidays", "holiday-updated"),
    "holiday_deleted": EventSpec(True, "Holiday removed", "Holiday removed: {name}", "holidays", "holiday-deleted"),
    "event_created": EventSpec(True, "New event", "New event: {name}", "events", "event-created"),
    "event_updated": EventSpec(True, "Event updated", "Event updated: {name}", "events", "event-updated"),
    "event_deleted": EventSpec(True, "Event cancelled", "Event cancelled: {name}", "events", "event-deleted"),
    "ticket_created": EventSpec(True, "New ticket", "New ticket: {title}", "tickets", "ticket-created"),
    "ticket_updated": EventSpec(True, "Ticket updated", "Ticket updated: {title}", "tickets", "ticket-updated"),
    "ticket_deleted": EventSpec(True, "Ticket deleted", "Ticket deleted: {title}", "tickets", "ticket-deleted"),
    "ticket_assigned": EventSpec(False, "Ticket assigned", "You have been assigned ticket: {title}", "tickets"),
    "todo_assigned": EventSpec(False, "New todo", "New todo assigned: {title}", "todos", "todo-created"),
    "leave_status_update": EventSpec(False, "Leave {status}", "Your leave request has been {status}", "leaves"),
    "project_assigned": EventSpec(False, "Project assigned", "You have been added to project: {name}", "projects"),
}


class _Blank(dict):
    def __missing__(self, key):
        return ""


def _render(template: str, entity: Dict[str, Any]) -> str:
    return template.format_map(_Blank(entity)).strip()


class EventCatalog:
    """
    Turns "<event type> happened to <entity>" into a notify_event call.
    Unknown types still go out, with generic text; types are open tags.
    """

    def __init__(self, fanout: FanoutOrchestrator, settings: Settings):
        self.fanout = fanout
        self.settings = settings

    def entry_for(self, event_type: str) -> EventSpec:
        return CATALOG.get(event_type, GENERIC)

    def url_for(self, entry: EventSpec) -> str:
        base = self.settings.push_base_url.rstrip("/")
        return f"{base}/{entry.path}" if entry.path else (base or "/")

    async def dispatch(
        self,
        event_type: str,
        entity: Optional[Dict[str, Any]] = None,
        recipient_id: Optional[str] = None,
        title: Optional[str] = None,
        message: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> FanoutResult:
        entry = self.entry_for(event_type)
        entity = entity or {}

        if recipient_id:
            scope = Scope.single(recipient_id)
        elif entry.broadcast or entry is GENERIC:
            scope = Scope.all_active()
        else:
            raise ValidationFailed(f"{event_type} needs a recipient")

        if entry.list_event:
            self.fanout.publish_list_event(entry.list_event, entity)

        if data is None:
            entity_id = entity.get("id") or entity.get("_id")
            data = {"entityId": entity_id, "entity": entity}

        return await self.fanout.notify_event(
            scope,
            event_type,
            title or _render(entry.title, entity),
            message or _render(entry.message, entity),
            data,
            url=self.url_for(entry),
        )
