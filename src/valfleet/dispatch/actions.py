# src/valfleet/dispatch/actions.py
from __future__ import annotations

from enum import Enum

from ..errors import UnknownActionError


class Action(str, Enum):
    SETUP = "setup"
    PROVISION = "provision"
    START = "start"
    STATUS = "status"
    LOGS = "logs"
    SSH = "ssh"


ALL_ACTIONS = [a.value for a in Action]
USAGE = f"usage: valfleet [{'|'.join(ALL_ACTIONS)}] NODE_ADDRS"


def parse_action(text: str) -> Action:
    try:
        return Action((text or "").strip())
    except ValueError:
        raise UnknownActionError(text) from None
