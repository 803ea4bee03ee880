# src/valfleet/genesis/scheduler.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class GenesisTimestamp:
    millis: int                   # unix epoch, milliseconds

    def as_datetime(self) -> datetime:
        return _EPOCH + timedelta(milliseconds=self.millis)

    def iso(self) -> str:
        return self.as_datetime().isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def render(self, fmt: str = "epoch_millis") -> str:
        """Value as written into the chainspec."""
        if fmt == "epoch_millis":
            return str(self.millis)
        if fmt == "rfc3339":
            return f'"{self.iso()}"'
        raise ValueError(f"Unknown timestamp format: {fmt}")


def schedule_genesis(offset: timedelta, now: Optional[datetime] = None) -> GenesisTimestamp:
    """
    Genesis = now + offset. Called once per provision so every host gets
    the same value.
    """
    if offset <= timedelta(0):
        raise ValueError("genesis offset must be positive")
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return GenesisTimestamp(millis=(now + offset - _EPOCH) // timedelta(milliseconds=1))
