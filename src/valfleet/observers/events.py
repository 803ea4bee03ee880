# src/valfleet/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events of one invocation
    action: str       # setup/provision/start/status/logs/ssh

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def new_ctx(run_id: str, action: str) -> Dict[str, Any]:
    return {"ts": _now(), "run_id": run_id, "action": action}


def stamp(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """Same run context, fresh timestamp."""
    return {**ctx, "ts": _now()}


# ---------------------------------------------------------------------
# Planning / local preparation
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ActionPlanned(BaseEvent):
    hosts: List[str]
    bootstrap: Optional[str]

@dataclass(frozen=True)
class HostOrderDrift(BaseEvent):
    problems: List[str]

@dataclass(frozen=True)
class IdentityStaged(BaseEvent):
    host: str
    position: int
    path: str

@dataclass(frozen=True)
class GenesisScheduled(BaseEvent):
    timestamp_ms: int
    iso: str

@dataclass(frozen=True)
class ConfigRendered(BaseEvent):
    host: str
    path: str


# ---------------------------------------------------------------------
# Fanout
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class HostStarted(BaseEvent):
    host: str
    command: str

@dataclass(frozen=True)
class HostSucceeded(BaseEvent):
    host: str
    duration_ms: int

@dataclass(frozen=True)
class HostFailed(BaseEvent):
    host: str
    error: str
    returncode: Optional[int] = None

@dataclass(frozen=True)
class HostDetached(BaseEvent):
    host: str

@dataclass(frozen=True)
class FanoutSummary(BaseEvent):
    ok: int
    failed: int
    detached: int
