# hrms_notify/models/queue_message.py
from typing import Any, Dict, Optional

from pydantic import BaseModel


class QueueMessage(BaseModel):
    """
    A fan-out request written to the queue by a domain writer after its
    own commit. `userId` targets one account; without it the event goes to
    every active account. `entity` is the mutated record as the writer saw it.
    """
    type: str
    userId: Optional[str] = None
    entity: Optional[Dict[str, Any]] = None
    title: Optional[str] = None
    message: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
