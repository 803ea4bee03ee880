# src/valfleet/fanout/xpanes.py
from __future__ import annotations

import logging
import subprocess
from typing import Callable, Dict, List, Optional

from .models import FanoutReport, HostOutcome
from ..dispatch.commands import HOST, Command
from ..errors import ConfigurationError
from ..hosts.models import Host
from ..observers.dispatcher import EventBus
from ..observers.events import HostStarted, stamp
from ..utils.execution import ExecutionContext

log = logging.getLogger("valfleet")


class XpanesFanout:
    """
    Hands the rendered template to xpanes (one tmux pane per host).
    xpanes only reports one exit status for the whole batch, so every host
    outcome carries that status.
    """

    def __init__(
        self,
        *,
        ctx: Optional[ExecutionContext] = None,
        bus: Optional[EventBus] = None,
        run_ctx: Optional[Dict] = None,
        run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        binary: str = "xpanes",
    ):
        self.ctx = ctx or ExecutionContext()
        self.bus = bus or EventBus()
        self.run_ctx = run_ctx or {"ts": "", "run_id": "", "action": ""}
        self._run = run
        self.binary = binary

    def argv(self, command: Command, hosts: List[Host]) -> List[str]:
        template = f"{command.render()}; echo -e {command.reconnect_hint(HOST)}"
        return [self.binary, "-c", template, *[h.address for h in hosts]]

    def run(self, command: Command, hosts: List[Host]) -> FanoutReport:
        argv = self.argv(command, hosts)
        for h in hosts:
            self.bus.emit(HostStarted(host=h.address, command=command.for_host(h.address), **stamp(self.run_ctx)))
        log.debug("$ %s", " ".join(argv))

        if self.ctx.dry_run:
            log.info("dry-run: %s", " ".join(argv))
            rc: Optional[int] = 0
        else:
            try:
                rc = self._run(argv, check=False).returncode
            except FileNotFoundError as e:
                raise ConfigurationError(f"{self.binary} not found on PATH") from e
            except KeyboardInterrupt:
                rc = None

        report = FanoutReport()
        for h in hosts:
            o = HostOutcome(address=h.address, position=h.position, returncode=rc)
            if rc is None:
                o.status = "DETACHED"
            elif rc == 0:
                o.status = "OK"
            else:
                o.status = "FAILED"
                o.error = f"{self.binary} exited with {rc}"
            report.add(o)
        return report
