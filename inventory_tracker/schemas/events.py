"""
Change events announced on the bus after a committed product mutation.

Events are immutable once built; subscribers receive the same object and
relay it to clients verbatim.
"""

from typing import Any, Dict
from pydantic import BaseModel, ConfigDict

from inventory_tracker.core.enums import ChangeKind
from inventory_tracker.schemas.product import ProductRead


class ChangeEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ChangeKind
    name: str
    payload: Dict[str, Any]

    @classmethod
    def created(cls, record: ProductRead) -> "ChangeEvent":
        return cls(kind=ChangeKind.CREATED, name=record.name, payload=record.model_dump(mode="json"))

    @classmethod
    def updated(cls, record: ProductRead) -> "ChangeEvent":
        return cls(kind=ChangeKind.UPDATED, name=record.name, payload=record.model_dump(mode="json"))

    @classmethod
    def deleted(cls, name: str) -> "ChangeEvent":
        return cls(kind=ChangeKind.DELETED, name=name, payload={"name": name})

    def to_message(self) -> Dict[str, Any]:
        """JSON-ready form sent over the real-time channel."""
        return self.model_dump(mode="json")
