# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/valfleet/hosts/ledger.py
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .models import Host

log = logging.getLogger("valfleet")


class HostOrderLedger:
    """
    Remembers the host order used by the last ``provision`` so that later
    actions can warn when the operator passes the hosts in another order.

    Drift is reported, never blocked: the host order on the command line
    stays authoritative.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[List[str]]:
        if not self.path.is_file():
            return None
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            log.warning("Ignoring unreadable host ledger %s: %s", self.path, e)
            return None
        addresses = data.get("addresses")
        if not isinstance(addresses, list):
            return None
        return [str(a) for a in addresses]

    def record(self, hosts: List[Host]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "addresses": [h.address for h in hosts],
            "recorded_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        }
        self.path.write_text(json.dumps(payload, indent=2) + "\n")
        log.debug("Recorded host order in %s", self.path)

    def check(self, hosts: List[Host]) -> List[str]:
        """
        Compare against the recorded order. Returns human readable drift
        messages (empty when nothing was recorded or nothing moved).
        """
        recorded = self.load()
        if not recorded or not hosts:
            return []

        problems: List[str] = []
        if recorded[0] != hosts[0].address:
            problems.append(
                f"bootstrap peer changed: provisioned with {recorded[0]}, "
                f"now {hosts[0].address}"
            )

        previous = {addr: i for i, addr in enumerate(recorded, 1)}
        for h in hosts:
            before = previous.get(h.address)
            if before is not None and before != h.position:
                problems.append(
                    f"{h.address} moved from position {before} to {h.position}"
                )
        return problems
