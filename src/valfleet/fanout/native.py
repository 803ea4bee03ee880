# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/valfleet/fanout/native.py
from __future__ import annotations

import json
import logging
import shlex
import subprocess
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional

import paramiko
import requests

from .models import FanoutReport, HostOutcome
from .ssh_runner import SSHRunner, open_ssh
from ..dispatch.commands import (
    HOST,
    BootstrapGrace,
    Command,
    InteractiveSession,
    RemoteExec,
    StatusQuery,
    Step,
    Upload,
)
from ..errors import ConfigurationError, RemoteExecutionError
from ..hosts.models import Host
from ..observers.dispatcher import EventBus
from ..observers.events import (
    HostDetached,
    HostFailed,
    HostStarted,
    HostSucceeded,
    stamp,
)
from ..utils.execution import ExecutionContext

log = logging.getLogger("valfleet")


class _Detached(Exception):
    """Raised inside a host worker once the operator interrupted the run."""


class _HostSession:
    """Per-host state; the SSH connection is opened on first use."""

    def __init__(self, host: Host, command: Command, connect: Callable[..., SSHRunner], connect_timeout: float):
        self.host = host
        self.command = command
        self._connect = connect
        self._connect_timeout = connect_timeout
        self._runner: Optional[SSHRunner] = None

    @property
    def runner(self) -> SSHRunner:
        if self._runner is None:
            log.debug("%s connecting as %s", self.host.label, self.command.target.user)
            self._runner = self._connect(
                self.host.address,
                self.command.target,
                connect_timeout=self._connect_timeout,
            )
        return self._runner

    def close(self) -> None:
        if self._runner is not None:
            self._runner.close()
            self._runner = None


class NativeFanout:
    """
    One worker thread per host. Each worker walks the command's steps over
    paramiko (uploads, remote commands) or requests (status), logs every
    output line prefixed with the host and reports its own outcome.
    A failing host never stops its siblings.
    """

    def __init__(
        self,
        *,
        ctx: Optional[ExecutionContext] = None,
        bus: Optional[EventBus] = None,
        run_ctx: Optional[Dict] = None,
        connect: Callable[..., SSHRunner] = open_ssh,
        http=requests,
        call: Callable[[List[str]], int] = subprocess.call,
        connect_timeout: float = 20.0,
        status_timeout: float = 10.0,
    ):
        self.ctx = ctx or ExecutionContext()
        self.bus = bus or EventBus()
        self.run_ctx = run_ctx or {"ts": "", "run_id": "", "action": ""}
        self.connect = connect
        self.http = http
        self.call = call
        self.connect_timeout = connect_timeout
        self.status_timeout = status_timeout

    # ------------------ public API ------------------

    def run(self, command: Command, hosts: List[Host]) -> FanoutReport:
        if command.interactive:
            return self._run_interactive(command, hosts)

        if command.follows and self.ctx.max_parallel and self.ctx.max_parallel < len(hosts):
            raise ConfigurationError(
                f"'{command.action.value}' follows output until interrupted; "
                f"--parallel {self.ctx.max_parallel} would never reach {len(hosts) - self.ctx.max_parallel} host(s)"
            )

        stop = threading.Event()
        workers = self.ctx.max_parallel or len(hosts) or 1
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fanout") as pool:
            futures = {pool.submit(self._run_host, command, h, stop): h for h in hosts}
            try:
                wait(futures)
            except KeyboardInterrupt:
                log.warning("Interrupted: detaching from all hosts, remote services keep running")
                stop.set()
                wait(futures)

        report = FanoutReport()
        for fut in futures:
            report.add(fut.result())
        return report

    # ------------------ per host ------------------

    def _run_host(self, command: Command, host: Host, stop: threading.Event) -> HostOutcome:
        outcome = HostOutcome(address=host.address, position=host.position)
        rendered = command.for_host(host.address)
        self.bus.emit(HostStarted(host=host.address, command=rendered, **stamp(self.run_ctx)))
        log.debug("%s $ %s", host.label, rendered)

        if self.ctx.dry_run:
            log.info("%s dry-run: %s", host.label, rendered)
            outcome.status = "OK"
            return outcome

        session = _HostSession(host, command, self.connect, self.connect_timeout)
        t0 = time.time()
        try:
            for step in command.steps:
                if stop.is_set():
                    raise _Detached()
                self._step(step, session, outcome, stop)
            outcome.status = "OK"
        except _Detached:
            outcome.status = "DETACHED"
        except RemoteExecutionError as e:
            outcome.status = "FAILED"
            outcome.returncode = e.returncode
            outcome.error = str(e)
        except (paramiko.SSHException, requests.RequestException, OSError) as e:
            outcome.status = "FAILED"
            outcome.error = f"{host.label} {type(e).__name__}: {e}"
        except Exception as e:
            # anything else stays with this host; siblings still report
            log.debug("%s unexpected error", host.label, exc_info=True)
            outcome.status = "FAILED"
            outcome.error = f"{host.label} {type(e).__name__}: {e}"
        finally:
            session.close()
            outcome.duration_ms = int((time.time() - t0) * 1000)

        if outcome.status == "OK":
            self.bus.emit(HostSucceeded(host=host.address, duration_ms=outcome.duration_ms, **stamp(self.run_ctx)))
        elif outcome.status == "DETACHED":
            self.bus.emit(HostDetached(host=host.address, **stamp(self.run_ctx)))
        else:
            log.error("%s", outcome.error)
            self.bus.emit(HostFailed(
                host=host.address, error=outcome.error or "", returncode=outcome.returncode,
                **stamp(self.run_ctx),
            ))
        log.info("%s %s", host.label, command.reconnect_hint(host.address))
        return outcome

    def _step(self, step: Step, session: _HostSession, outcome: HostOutcome, stop: threading.Event) -> None:
        host = session.host

        def on_line(stream: str, line: str) -> None:
            outcome.output.append(line)
            if stream == "stderr":
                log.info("%s[stderr] %s", host.label, line)
            else:
                log.info("%s %s", host.label, line)

        if isinstance(step, Upload):
            for src in step.sources:
                local = src.replace(HOST, host.address)
                remote = session.runner.put_file(local, step.destination)
                log.info("%s uploaded %s -> %s", host.label, local, remote)

        elif isinstance(step, RemoteExec):
            rc = session.runner.stream(step.command, on_line, stop=stop)
            if rc is None:
                raise _Detached()
            outcome.returncode = rc
            if rc != 0:
                raise RemoteExecutionError(host.address, f"'{step.command}' exited with {rc}", rc)

        elif isinstance(step, BootstrapGrace):
            if host.address != step.bootstrap:
                on_line("stdout", "not bootstrap, sleeping ...")
                if stop.wait(step.seconds):
                    raise _Detached()

        elif isinstance(step, StatusQuery):
            self._query_status(step, host, outcome, on_line)

        elif isinstance(step, InteractiveSession):
            raise ConfigurationError("interactive sessions cannot run inside a worker")

    def _query_status(self, step: StatusQuery, host: Host, outcome: HostOutcome, on_line) -> None:
        url = step.url(host.address)
        resp = self.http.get(url, timeout=self.status_timeout)
        resp.raise_for_status()
        try:
            data = resp.json()
        except ValueError as e:
            raise RemoteExecutionError(host.address, f"{url} did not return JSON") from e
        if not isinstance(data, dict):
            raise RemoteExecutionError(host.address, f"{url} returned {type(data).__name__}, expected an object")
        outcome.data = data
        for line in json.dumps(data, indent=2, sort_keys=True).splitlines():
            on_line("stdout", line)

    # ------------------ interactive ------------------

    def _run_interactive(self, command: Command, hosts: List[Host]) -> FanoutReport:
        if len(hosts) != 1:
            raise ConfigurationError(
                f"'{command.action.value}' opens an interactive session; "
                "use --runner xpanes for more than one host"
            )
        host = hosts[0]
        argv = shlex.split(command.for_host(host.address))
        outcome = HostOutcome(address=host.address, position=host.position)
        self.bus.emit(HostStarted(host=host.address, command=" ".join(argv), **stamp(self.run_ctx)))

        if self.ctx.dry_run:
            log.info("%s dry-run: %s", host.label, " ".join(argv))
            outcome.status = "OK"
        else:
            try:
                rc = self.call(argv)
            except KeyboardInterrupt:
                rc = None
            outcome.returncode = rc
            if rc is None:
                outcome.status = "DETACHED"
            elif rc == 0:
                outcome.status = "OK"
            else:
                outcome.status = "FAILED"
                outcome.error = f"{host.label} ssh exited with {rc}"

        log.info("%s %s", host.label, command.reconnect_hint(host.address))
        report = FanoutReport()
        report.add(outcome)
        return report
