from dataclasses import dataclass, field

from pydantic import BaseModel


class NotificationMessage(BaseModel):
    """Ephemeral push message; serialized as {"type": ..., "message": ...}."""

    type: str
    message: str

    def to_wire(self) -> str:
        return self.model_dump_json()


@dataclass(slots=True)
class BroadcastResult:
    """Per-broadcast delivery counts."""

    delivered: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.delivered + self.failed
