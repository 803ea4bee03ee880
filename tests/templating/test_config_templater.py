from pathlib import Path

import pytest

from valfleet.errors import TemplateMismatchError
from valfleet.genesis.scheduler import GenesisTimestamp
from valfleet.hosts.resolver import resolve_hosts
from valfleet.templating.config_templater import ConfigTemplater


GENESIS = GenesisTimestamp(millis=1_700_000_000_000)


def _templater(workspace: Path, staging: Path, **kw) -> ConfigTemplater:
    return ConfigTemplater(
        chainspec_template=workspace / "resources" / "production" / "chainspec.toml",
        config_template=workspace / "resources" / "local" / "config.toml",
        staging_dir=staging,
        **kw,
    )


def _diff(a: str, b: str):
    return [(x, y) for x, y in zip(a.splitlines(), b.splitlines()) if x != y]


def test_prepare_stamps_timestamp_and_bootstrap(workspace: Path, tmp_path: Path):
    baseline = (workspace / "resources" / "local" / "config.toml").read_text()
    t = _templater(workspace, tmp_path / "stage")
    [a, _b] = resolve_hosts(["10.0.0.1", "10.0.0.2"])

    shared = t.prepare(a, GENESIS)

    chainspec = shared.chainspec_path.read_text()
    assert "timestamp = 1700000000000" in chainspec
    assert "activation_timestamp = 1700000000000" in chainspec
    assert "1600454700000" not in chainspec

    config = shared.config_path.read_text()
    assert "known_addresses = ['10.0.0.1:34553']" in config
    assert "known_addresses = ['127.0.0.1:34553']" not in config

    # baseline is never touched
    assert (workspace / "resources" / "local" / "config.toml").read_text() == baseline


def test_rfc3339_timestamp(workspace: Path, tmp_path: Path):
    t = _templater(workspace, tmp_path / "stage", timestamp_format="rfc3339")
    shared = t.prepare(resolve_hosts(["a"])[0], GENESIS)
    assert 'timestamp = "2023-11-14T22:13:20.000Z"' in shared.chainspec_path.read_text()


def test_missing_timestamp_fails_without_writing(workspace: Path, tmp_path: Path):
    (workspace / "resources" / "production" / "chainspec.toml").write_text("[network]\nname = 'x'\n")
    stage = tmp_path / "stage"
    t = _templater(workspace, stage)

    with pytest.raises(TemplateMismatchError) as ei:
        t.prepare(resolve_hosts(["a"])[0], GENESIS)
    assert ei.value.field == "timestamp"
    assert not (stage / "chainspec.toml").exists()
    assert not (stage / "config.toml").exists()


def test_missing_known_addresses_fails(workspace: Path, tmp_path: Path):
    (workspace / "resources" / "local" / "config.toml").write_text("[network]\npublic_address = 'x'\n")
    t = _templater(workspace, tmp_path / "stage")
    with pytest.raises(TemplateMismatchError, match="known_addresses"):
        t.prepare(resolve_hosts(["a"])[0], GENESIS)


def test_host_configs_differ_only_in_public_address(workspace: Path, tmp_path: Path):
    stage = tmp_path / "stage"
    t = _templater(workspace, stage)
    hosts = resolve_hosts(["A", "B", "C"])
    shared = t.prepare(hosts[0], GENESIS)

    paths = t.render_hosts(shared, hosts)

    assert paths == {h.address: stage / h.address / "config.toml" for h in hosts}
    docs = {addr: p.read_text() for addr, p in paths.items()}
    assert "public_address = 'A:34553'" in docs["A"]
    assert "public_address = 'B:34553'" in docs["B"]
    assert "public_address = 'C:34553'" in docs["C"]
    for addr in ("B", "C"):
        assert _diff(docs["A"], docs[addr]) == [
            ("public_address = 'A:34553'", f"public_address = '{addr}:34553'")
        ]
    for doc in docs.values():
        assert "known_addresses = ['A:34553']" in doc

    # the shared working copy keeps its placeholder address
    assert "public_address = '127.0.0.1:34553'" in shared.config_path.read_text()


def test_missing_public_address_writes_no_host_config(workspace: Path, tmp_path: Path):
    (workspace / "resources" / "local" / "config.toml").write_text("known_addresses = []\n")
    stage = tmp_path / "stage"
    t = _templater(workspace, stage)
    hosts = resolve_hosts(["A", "B"])

    with pytest.raises(TemplateMismatchError, match="public_address"):
        t.prepare(hosts[0], GENESIS)
    assert not (stage / "chainspec.toml").exists()
    assert not (stage / "config.toml").exists()
    assert not (stage / "A").exists()
    assert not (stage / "B").exists()


def test_custom_gossip_port(workspace: Path, tmp_path: Path):
    t = _templater(workspace, tmp_path / "stage", gossip_port=4000)
    hosts = resolve_hosts(["A"])
    shared = t.prepare(hosts[0], GENESIS)
    assert "known_addresses = ['A:4000']" in shared.config_text
    assert "public_address = 'A:4000'" in t.render_host(shared, hosts[0])
