# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/valfleet/dispatch/commands.py
from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .actions import Action

# "the current host" in a rendered command template
HOST = "{}"


def quote_path(path) -> str:
    """shlex.quote a local path, leaving the HOST placeholder bare."""
    return HOST.join(shlex.quote(part) if part else "" for part in str(path).split(HOST))


@dataclass(frozen=True)
class SshTarget:
    user: str = "root"
    port: int = 22
    key: Optional[Path] = None

    def ssh_flags(self) -> str:
        flags = []
        if self.key:
            flags.append(f"-i {quote_path(self.key)}")
        if self.port != 22:
            flags.append(f"-p {self.port}")
        return "".join(f"{f} " for f in flags)

    def scp_flags(self) -> str:
        flags = []
        if self.key:
            flags.append(f"-i {quote_path(self.key)}")
        if self.port != 22:
            flags.append(f"-P {self.port}")
        return "".join(f"{f} " for f in flags)


# ------------------ steps ------------------

@dataclass(frozen=True)
class Upload:
    sources: Tuple[str, ...]      # local paths, may contain HOST
    destination: str              # remote file, or directory when it ends with "/"

    def render(self, target: SshTarget) -> str:
        return f"scp {target.scp_flags()}{' '.join(quote_path(s) for s in self.sources)} {target.user}@{HOST}:{self.destination}"


@dataclass(frozen=True)
class RemoteExec:
    command: str
    follow: bool = False          # runs until interrupted (journalctl -f)

    def render(self, target: SshTarget) -> str:
        return f'ssh {target.ssh_flags()}{target.user}@{HOST} "{self.command}"'


@dataclass(frozen=True)
class BootstrapGrace:
    bootstrap: str
    seconds: float

    def render(self, target: SshTarget) -> str:
        return (
            f"if [ ! {HOST} = {self.bootstrap} ]; then "
            f"echo not bootstrap, sleeping ...; sleep {self.seconds:g}; fi"
        )


@dataclass(frozen=True)
class StatusQuery:
    port: int
    path: str = "/status"

    def url(self, address: str) -> str:
        return f"http://{address}:{self.port}{self.path}"

    def render(self, target: SshTarget) -> str:
        return f"curl {HOST}:{self.port}{self.path} | jq"


@dataclass(frozen=True)
class InteractiveSession:
    def render(self, target: SshTarget) -> str:
        return f"ssh {target.ssh_flags()}{target.user}@{HOST}"


Step = Union[Upload, RemoteExec, BootstrapGrace, StatusQuery, InteractiveSession]


@dataclass(frozen=True)
class Command:
    action: Action
    target: SshTarget
    steps: Tuple[Step, ...]

    @property
    def interactive(self) -> bool:
        return any(isinstance(s, InteractiveSession) for s in self.steps)

    @property
    def follows(self) -> bool:
        """True when a step streams until interrupted (journalctl -f)."""
        return any(isinstance(s, RemoteExec) and s.follow for s in self.steps)

    def render(self) -> str:
        return "; ".join(s.render(self.target) for s in self.steps)

    def for_host(self, address: str) -> str:
        return self.render().replace(HOST, address)

    def reconnect_hint(self, address: str) -> str:
        return f"exited, connect with 'ssh {self.target.ssh_flags()}{self.target.user}@{address}'"


# ------------------ dispatcher ------------------

@dataclass
class CommandContext:
    """Everything the command templates are parameterized by."""
    target: SshTarget
    bootstrap: str
    staging_dir: Path
    config_dir: str = "/etc/casper-node"
    service: str = "casper-node"
    payload_local: Optional[Path] = None
    payload_remote: str = "/tmp/payload.sh"
    accounts: Optional[Path] = None
    chainspec: Optional[Path] = None
    grace_seconds: float = 5.0
    status_port: int = 7777
    status_path: str = "/status"


def build_command(action: Action, ctx: CommandContext) -> Command:
    steps: List[Step]

    if action is Action.SETUP:
        payload = str(ctx.payload_local or "payload.sh")
        steps = [
            Upload((payload,), ctx.payload_remote),
            RemoteExec(f"sh {ctx.payload_remote}"),
        ]
    elif action is Action.PROVISION:
        shared = tuple(str(p) for p in (ctx.accounts, ctx.chainspec) if p is not None)
        host_config = str(Path(ctx.staging_dir) / HOST / "config.toml")
        host_key = str(Path(ctx.staging_dir) / f"{HOST}.pem")
        steps = [
            Upload(shared + (host_config,), f"{ctx.config_dir}/"),
            Upload((host_key,), f"{ctx.config_dir}/secret_key.pem"),
        ]
    elif action is Action.START:
        steps = [
            BootstrapGrace(ctx.bootstrap, ctx.grace_seconds),
            RemoteExec(
                f"systemctl start {ctx.service}; journalctl -u {ctx.service} -f",
                follow=True,
            ),
        ]
    elif action is Action.STATUS:
        steps = [StatusQuery(ctx.status_port, ctx.status_path)]
    elif action is Action.LOGS:
        steps = [RemoteExec(f"journalctl -u {ctx.service} -f", follow=True)]
    elif action is Action.SSH:
        steps = [InteractiveSession()]
    else:  # pragma: no cover - Action is closed
        raise ValueError(action)

    return Command(action=action, target=ctx.target, steps=tuple(steps))
