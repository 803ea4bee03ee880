# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/valfleet/identity/pool.py
from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List

from ..errors import PoolExhaustedError
from ..hosts.models import Host

log = logging.getLogger("valfleet")


@dataclass(frozen=True)
class Identity:
    host: Host
    source: Path                  # pool file for host.position

    def staged_path(self, staging_dir: Path) -> Path:
        return Path(staging_dir) / f"{self.host.address}.pem"


class IdentityPool:
    """
    A directory of pre-generated secret keys, one per position:
    node-1.pem, node-2.pem, ... The number of consecutive files caps the
    network size.
    """

    def __init__(self, directory: Path, filename_pattern: str = "node-{position}.pem"):
        self.directory = Path(directory)
        self.filename_pattern = filename_pattern

    def path_for(self, position: int) -> Path:
        return self.directory / self.filename_pattern.format(position=position)

    @property
    def size(self) -> int:
        n = 0
        while self.path_for(n + 1).is_file():
            n += 1
        return n

    def select(self, host: Host) -> Identity:
        source = self.path_for(host.position)
        if host.position < 1 or not source.is_file():
            raise PoolExhaustedError(host.position, self.size, str(self.directory))
        return Identity(host=host, source=source)

    def assign(self, hosts: List[Host]) -> List[Identity]:
        """
        Select identities for every host. Raises before returning anything
        if any position has no pool entry.
        """
        size = self.size
        for h in hosts:
            if h.position > size:
                raise PoolExhaustedError(h.position, size, str(self.directory))
        return [self.select(h) for h in hosts]

    def stage(self, identity: Identity, staging_dir: Path) -> Path:
        """Copy the identity to <staging_dir>/<address>.pem (overwrites)."""
        dest = identity.staged_path(staging_dir)
        dest.parent.mkdir(parents=True, exist_ok=True)
        log.info(
            "Creating secret key for %s from %s", identity.host.address, identity.source
        )
        shutil.copyfile(identity.source, dest)
        os.chmod(dest, 0o600)
        return dest
