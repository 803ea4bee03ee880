# src/valfleet/hosts/models.py

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Host:
    """
    A validator host. ``position`` (1-based argument order) is the only
    identity key: it picks the identity file and decides the bootstrap peer.
    """
    address: str                  # IP or DNS to connect
    position: int

    @property
    def label(self) -> str:
        return f"[{self.address}]"
