# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/valfleet/hosts/resolver.py
from __future__ import annotations

from typing import Iterable, List, Optional

from .models import Host
from ..errors import ConfigurationError


def resolve_hosts(addresses: Iterable[str], *, require: bool = True) -> List[Host]:
    """
    Turn the trailing CLI arguments into positioned hosts.

    Order is significant: it must be the same on every invocation for the
    same network, otherwise identities and the bootstrap peer move around.
    """
    hosts: List[Host] = []
    for i, raw in enumerate(addresses or [], 1):
        address = (raw or "").strip()
        if not address:
            raise ConfigurationError(f"Empty host address at position {i}")
        hosts.append(Host(address=address, position=i))

    if require and not hosts:
        raise ConfigurationError("At least one host address is required")
    return hosts


def elect_bootstrap(hosts: List[Host]) -> Optional[Host]:
    # Derived from order on every call; never cached.
    return hosts[0] if hosts else None
