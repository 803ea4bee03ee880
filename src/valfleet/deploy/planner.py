# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..config.models import FleetConfig
from ..dispatch.actions import Action, parse_action
from ..hosts.models import Host
from ..hosts.resolver import elect_bootstrap, resolve_hosts
from ..identity.pool import Identity, IdentityPool

# Observer bits
from ..observers.dispatcher import EventBus
from ..observers.events import ActionPlanned, stamp


@dataclass(frozen=True)
class ActionPlan:
    """
    Everything derived from (action, host order) for one invocation.
    Nothing here is persisted; every action recomputes it.
    """
    action: Action
    hosts: Tuple[Host, ...]
    bootstrap: Optional[Host]
    identities: Tuple[Identity, ...]

    @property
    def addresses(self) -> List[str]:
        return [h.address for h in self.hosts]


def identity_pool(cfg: FleetConfig) -> IdentityPool:
    return IdentityPool(cfg.resolve(cfg.identity.directory), cfg.identity.filename_pattern)


def plan_action(
    action: str | Action,
    addresses: Sequence[str],
    cfg: FleetConfig,
    bus: Optional[EventBus] = None,
    run_ctx: Optional[Dict] = None,
) -> ActionPlan:
    """
    Pure planning: parse the verb, position the hosts, elect the bootstrap
    peer and select identities. Raises UnknownActionError,
    ConfigurationError or PoolExhaustedError before anything is touched.
    """
    act = action if isinstance(action, Action) else parse_action(action)
    hosts = resolve_hosts(addresses)
    bootstrap = elect_bootstrap(hosts)
    identities = identity_pool(cfg).assign(hosts)

    if bus and run_ctx:
        bus.emit(ActionPlanned(
            hosts=[h.address for h in hosts],
            bootstrap=bootstrap.address if bootstrap else None,
            **stamp(run_ctx),
        ))

    return ActionPlan(
        action=act,
        hosts=tuple(hosts),
        bootstrap=bootstrap,
        identities=tuple(identities),
    )
