# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/valfleet/templating/config_templater.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Pattern

from ..errors import TemplateMismatchError
from ..genesis.scheduler import GenesisTimestamp
from ..hosts.models import Host

log = logging.getLogger("valfleet")

# Same line-oriented rules the chainspec/config have always been patched with.
TIMESTAMP_RE = re.compile(r"^([A-Za-z0-9_]*timestamp) = .*$", re.MULTILINE)
KNOWN_ADDRESSES_RE = re.compile(r"^known_addresses = .*$", re.MULTILINE)
PUBLIC_ADDRESS_RE = re.compile(r"^public_address = .*$", re.MULTILINE)


def substitute(text: str, pattern: Pattern[str], replace, *, field: str, document: str) -> str:
    """
    Apply one substitution; raise TemplateMismatchError when the pattern
    matches nothing. ``replace`` is a callable taking the match.
    """
    new_text, count = pattern.subn(replace, text)
    if count == 0:
        raise TemplateMismatchError(field, document)
    return new_text


@dataclass(frozen=True)
class SharedDocuments:
    """Batch-wide working copies (timestamp + bootstrap peer applied)."""
    chainspec_path: Path
    config_path: Path
    config_text: str
    genesis: GenesisTimestamp
    bootstrap: Host


class ConfigTemplater:
    """
    baseline (read-only) -> shared working copy -> one copy per host.

    The shared step is done once and sequentially; per-host documents are
    derived from the shared text so they differ only in public_address.
    """

    def __init__(
        self,
        *,
        chainspec_template: Path,
        config_template: Path,
        staging_dir: Path,
        gossip_port: int = 34553,
        timestamp_format: str = "epoch_millis",
    ):
        self.chainspec_template = Path(chainspec_template)
        self.config_template = Path(config_template)
        self.staging_dir = Path(staging_dir)
        self.gossip_port = gossip_port
        self.timestamp_format = timestamp_format

    # ------------------ shared ------------------

    def prepare(self, bootstrap: Host, genesis: GenesisTimestamp) -> SharedDocuments:
        chainspec = self.chainspec_template.read_text()
        config = self.config_template.read_text()

        stamp = genesis.render(self.timestamp_format)
        chainspec = substitute(
            chainspec,
            TIMESTAMP_RE,
            lambda m: f"{m.group(1)} = {stamp}",
            field="timestamp",
            document=str(self.chainspec_template),
        )
        peer = f"['{bootstrap.address}:{self.gossip_port}']"
        config = substitute(
            config,
            KNOWN_ADDRESSES_RE,
            lambda m: f"known_addresses = {peer}",
            field="known_addresses",
            document=str(self.config_template),
        )

        # per-host rendering needs this line; fail before any working copy exists
        if not PUBLIC_ADDRESS_RE.search(config):
            raise TemplateMismatchError("public_address", str(self.config_template))

        # nothing is written until every substitution is known to apply
        self.staging_dir.mkdir(parents=True, exist_ok=True)
        chainspec_path = self.staging_dir / "chainspec.toml"
        config_path = self.staging_dir / "config.toml"
        chainspec_path.write_text(chainspec)
        config_path.write_text(config)
        log.info("Genesis timestamp %s (%s)", genesis.millis, genesis.iso())
        log.info("Bootstrap node: %s", bootstrap.address)

        return SharedDocuments(
            chainspec_path=chainspec_path,
            config_path=config_path,
            config_text=config,
            genesis=genesis,
            bootstrap=bootstrap,
        )

    # ------------------ per host ------------------

    def render_host(self, shared: SharedDocuments, host: Host) -> str:
        address = f"'{host.address}:{self.gossip_port}'"
        return substitute(
            shared.config_text,
            PUBLIC_ADDRESS_RE,
            lambda m: f"public_address = {address}",
            field="public_address",
            document=str(self.config_template),
        )

    def host_config_path(self, host: Host) -> Path:
        return self.staging_dir / host.address / "config.toml"

    def render_hosts(self, shared: SharedDocuments, hosts: List[Host]) -> Dict[str, Path]:
        """
        Render every host in memory first, then write
        <staging_dir>/<address>/config.toml for each.
        """
        rendered = {h.address: self.render_host(shared, h) for h in hosts}

        out: Dict[str, Path] = {}
        for h in hosts:
            path = self.host_config_path(h)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(rendered[h.address])
            log.debug("%s rendered config %s", h.label, path)
            out[h.address] = path
        return out
