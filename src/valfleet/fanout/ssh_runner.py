# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/valfleet/fanout/ssh_runner.py

from __future__ import annotations

import posixpath
import threading
from pathlib import Path
from typing import Callable, Optional

import paramiko

from ..dispatch.commands import SshTarget

LineHandler = Callable[[str, str], None]     # (stream, line), stream is "stdout" | "stderr"


class _LineBuffer:
    def __init__(self, stream: str, on_line: LineHandler):
        self.stream = stream
        self.on_line = on_line
        self._pending = ""

    def feed(self, chunk: str) -> None:
        self._pending += chunk
        *lines, self._pending = self._pending.split("\n")
        for line in lines:
            self.on_line(self.stream, line.rstrip("\r"))

    def flush(self) -> None:
        if self._pending:
            self.on_line(self.stream, self._pending.rstrip("\r"))
            self._pending = ""


class SSHRunner:
    def __init__(self, client: paramiko.SSHClient):
        self.client = client

    def stream(
        self,
        cmd: str,
        on_line: LineHandler,
        *,
        stop: Optional[threading.Event] = None,
        poll: float = 0.2,
    ) -> Optional[int]:
        """
        Run ``cmd`` and hand every output line to ``on_line`` as it arrives.

        Returns the exit status, or None when ``stop`` was set first. Stopping
        only closes our channel; whatever the command started keeps running.
        """
        stop = stop or threading.Event()
        _stdin, stdout, stderr = self.client.exec_command(cmd)
        ch = stdout.channel
        out = _LineBuffer("stdout", on_line)
        err = _LineBuffer("stderr", on_line)

        while not ch.exit_status_ready():
            if stop.is_set():
                ch.close()
                out.flush()
                err.flush()
                return None
            got = False
            if ch.recv_ready():
                out.feed(ch.recv(4096).decode("utf-8", "replace"))
                got = True
            if ch.recv_stderr_ready():
                err.feed(ch.recv_stderr(4096).decode("utf-8", "replace"))
                got = True
            if not got:
                stop.wait(poll)

        out.feed(stdout.read().decode("utf-8", "replace"))
        err.feed(stderr.read().decode("utf-8", "replace"))
        out.flush()
        err.flush()
        return ch.recv_exit_status()

    def put_file(self, local_path: str | Path, remote_path: str) -> str:
        """Upload via SFTP. A remote path ending in "/" is a directory."""
        if remote_path.endswith("/"):
            remote_path = posixpath.join(remote_path, Path(local_path).name)
        sftp = self.client.open_sftp()
        try:
            sftp.put(str(local_path), remote_path)
        finally:
            sftp.close()
        return remote_path

    def close(self) -> None:
        self.client.close()


def _load_pkey(key_path: Path) -> paramiko.PKey:
    for key_cls in (
        paramiko.Ed25519Key,
        paramiko.RSAKey,
        paramiko.ECDSAKey,
    ):
        try:
            return key_cls.from_private_key_file(str(key_path))
        except paramiko.SSHException:
            continue
    raise paramiko.SSHException(f"Unsupported private key format for {key_path}")


def open_ssh(
    address: str,
    target: SshTarget,
    *,
    connect_timeout: float = 20.0,
) -> SSHRunner:
    client = paramiko.SSHClient()
    client.load_system_host_keys()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    pkey = _load_pkey(target.key) if target.key else None

    client.connect(
        hostname=address,
        port=target.port,
        username=target.user,
        pkey=pkey,
        timeout=connect_timeout,
        allow_agent=True,
        look_for_keys=pkey is None,
    )

    return SSHRunner(client)
