# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Optional, Protocol, List

from .planner import ActionPlan, identity_pool
from ..config.models import FleetConfig
from ..dispatch.actions import Action
from ..dispatch.commands import Command, CommandContext, SshTarget, build_command
from ..errors import ConfigurationError
from ..fanout.models import FanoutReport
from ..fanout.native import NativeFanout
from ..fanout.xpanes import XpanesFanout
from ..genesis.scheduler import schedule_genesis
from ..hosts.ledger import HostOrderLedger
from ..hosts.models import Host
from ..templating.config_templater import ConfigTemplater
from ..templating.payload import PayloadRenderer
from ..utils.execution import ExecutionContext

# Observer bits
from ..observers.dispatcher import EventBus
from ..observers.events import (
    ConfigRendered,
    FanoutSummary,
    GenesisScheduled,
    HostOrderDrift,
    IdentityStaged,
    new_ctx,
    stamp,
)

log = logging.getLogger("valfleet")


class Fanout(Protocol):
    def run(self, command: Command, hosts: List[Host]) -> FanoutReport: ...


def make_fanout(
    cfg: FleetConfig,
    *,
    ctx: ExecutionContext,
    bus: EventBus,
    run_ctx: Dict,
) -> Fanout:
    if cfg.runner == "xpanes":
        return XpanesFanout(ctx=ctx, bus=bus, run_ctx=run_ctx)
    return NativeFanout(
        ctx=ctx,
        bus=bus,
        run_ctx=run_ctx,
        connect_timeout=cfg.remote.connect_timeout,
        status_timeout=cfg.remote.status_timeout,
    )


def _require_file(path: Path, what: str) -> Path:
    if not path.is_file():
        raise ConfigurationError(f"{what} not found: {path}")
    return path


def _check_host_order(plan: ActionPlan, cfg: FleetConfig, bus: EventBus, run_ctx: Dict) -> None:
    if cfg.ledger_path is None:
        return
    problems = HostOrderLedger(cfg.resolve(cfg.ledger_path)).check(list(plan.hosts))
    if not problems:
        return
    for p in problems:
        log.warning("Host order differs from last provision: %s", p)
    log.warning("Pass the hosts in the same order on every action to keep identities and the bootstrap peer stable")
    bus.emit(HostOrderDrift(problems=problems, **stamp(run_ctx)))


def prepare_provision(
    plan: ActionPlan,
    cfg: FleetConfig,
    *,
    bus: EventBus,
    run_ctx: Dict,
    now: Optional[datetime] = None,
) -> Dict[str, Path]:
    """
    Local, sequential part of provision, finished before any host is
    contacted: one genesis timestamp, one shared config, one config and one
    staged identity per host.
    """
    staging = cfg.resolve(cfg.staging_dir)
    templater = ConfigTemplater(
        chainspec_template=_require_file(cfg.resolve(cfg.templates.chainspec), "chainspec template"),
        config_template=_require_file(cfg.resolve(cfg.templates.node_config), "node config template"),
        staging_dir=staging,
        gossip_port=cfg.network.gossip_port,
        timestamp_format=cfg.network.timestamp_format,
    )
    _require_file(cfg.resolve(cfg.templates.accounts), "accounts file")

    log.info("Setting genesis timestamp to NOW + %gs", cfg.network.genesis_offset_seconds)
    genesis = schedule_genesis(timedelta(seconds=cfg.network.genesis_offset_seconds), now=now)
    bus.emit(GenesisScheduled(timestamp_ms=genesis.millis, iso=genesis.iso(), **stamp(run_ctx)))

    shared = templater.prepare(plan.bootstrap, genesis)
    rendered = templater.render_hosts(shared, list(plan.hosts))
    for address, path in rendered.items():
        bus.emit(ConfigRendered(host=address, path=str(path), **stamp(run_ctx)))

    pool = identity_pool(cfg)
    for identity in plan.identities:
        staged = pool.stage(identity, staging)
        bus.emit(IdentityStaged(
            host=identity.host.address,
            position=identity.host.position,
            path=str(staged),
            **stamp(run_ctx),
        ))

    return rendered


def command_context(plan: ActionPlan, cfg: FleetConfig) -> CommandContext:
    remote = cfg.remote
    return CommandContext(
        target=SshTarget(
            user=remote.user,
            port=remote.port,
            key=cfg.resolve(remote.ssh_key) if remote.ssh_key else None,
        ),
        bootstrap=plan.bootstrap.address if plan.bootstrap else "",
        staging_dir=cfg.resolve(cfg.staging_dir),
        config_dir=remote.config_dir,
        service=remote.service,
        payload_local=cfg.resolve(cfg.staging_dir) / "payload.sh",
        payload_remote=remote.payload_path,
        accounts=cfg.resolve(cfg.templates.accounts),
        chainspec=cfg.resolve(cfg.staging_dir) / "chainspec.toml",
        grace_seconds=cfg.network.start_grace_seconds,
        status_port=cfg.network.status_port,
        status_path=cfg.network.status_path,
    )


def run_action(
    plan: ActionPlan,
    cfg: FleetConfig,
    *,
    ctx: Optional[ExecutionContext] = None,
    bus: Optional[EventBus] = None,
    run_ctx: Optional[Dict] = None,
    fanout: Optional[Fanout] = None,
    now: Optional[datetime] = None,
) -> FanoutReport:
    """
    Prepare local artifacts for the action, then fan the command out to
    every host. Per-host failures are in the returned report; call
    ``report.raise_for_failures()`` to turn them into an error.
    """
    ctx = ctx or ExecutionContext()
    bus = bus or EventBus()
    run_ctx = run_ctx or new_ctx(run_id="", action=plan.action.value)

    _check_host_order(plan, cfg, bus, run_ctx)

    if plan.action is Action.SSH and cfg.runner == "native" and len(plan.hosts) > 1:
        raise ConfigurationError("ssh to more than one host needs --runner xpanes")

    if plan.action is Action.SETUP:
        PayloadRenderer().write(cfg.payload, cfg.remote, cfg.resolve(cfg.staging_dir))
    elif plan.action is Action.PROVISION:
        prepare_provision(plan, cfg, bus=bus, run_ctx=run_ctx, now=now)
        if cfg.ledger_path is not None and not ctx.dry_run:
            HostOrderLedger(cfg.resolve(cfg.ledger_path)).record(list(plan.hosts))

    command = build_command(plan.action, command_context(plan, cfg))
    log.debug("command template: %s", command.render())

    fanout = fanout or make_fanout(cfg, ctx=ctx, bus=bus, run_ctx=run_ctx)
    report = fanout.run(command, list(plan.hosts))

    bus.emit(FanoutSummary(
        ok=report.ok,
        failed=len(report.failed),
        detached=report.detached,
        **stamp(run_ctx),
    ))
    log.info("[%s] %s", plan.action.value, report.summary())
    return report
