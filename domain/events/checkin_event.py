from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class CheckInEvent(BaseModel):
    """
    What the Quest Engine sees of a committed check-in.
    `event_id` is the check-in id, so redelivery is recognised.
    """

    event_id: str
    user_id: str
    location_id: str
    category: Optional[str] = None
    timestamp: datetime
