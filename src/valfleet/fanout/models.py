# src/valfleet/fanout/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import RemoteExecutionError


@dataclass
class HostOutcome:
    address: str
    position: int
    status: str = "PENDING"       # "OK" | "FAILED" | "DETACHED"
    returncode: Optional[int] = None
    error: Optional[str] = None
    output: List[str] = field(default_factory=list)
    data: Optional[Dict[str, Any]] = None    # parsed status document
    duration_ms: int = 0


@dataclass
class FanoutReport:
    outcomes: List[HostOutcome] = field(default_factory=list)

    def add(self, outcome: HostOutcome) -> None:
        self.outcomes.append(outcome)

    def by_address(self) -> Dict[str, HostOutcome]:
        return {o.address: o for o in self.outcomes}

    @property
    def ok(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "OK")

    @property
    def failed(self) -> List[HostOutcome]:
        return [o for o in self.outcomes if o.status == "FAILED"]

    @property
    def detached(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "DETACHED")

    def summary(self) -> str:
        return f"OK={self.ok} FAILED={len(self.failed)} DETACHED={self.detached}"

    def raise_for_failures(self) -> None:
        failed = self.failed
        if not failed:
            return
        names = ", ".join(o.address for o in failed)
        raise RemoteExecutionError(
            names,
            f"{len(failed)} of {len(self.outcomes)} hosts failed",
            failed[0].returncode if len(failed) == 1 else None,
        )
