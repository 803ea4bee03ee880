import os
import stat
from pathlib import Path

import pytest

from valfleet.errors import PoolExhaustedError
from valfleet.hosts.resolver import resolve_hosts
from valfleet.identity.pool import IdentityPool


def _pool(tmp_path: Path, n: int) -> IdentityPool:
    d = tmp_path / "keys"
    d.mkdir()
    for i in range(1, n + 1):
        (d / f"node-{i}.pem").write_text(f"key-{i}")
    return IdentityPool(d)


def test_size_counts_consecutive_files(tmp_path: Path):
    pool = _pool(tmp_path, 3)
    assert pool.size == 3
    (pool.directory / "node-5.pem").write_text("orphan")   # gap at 4
    assert pool.size == 3


def test_identities_are_keyed_by_position(tmp_path: Path):
    pool = _pool(tmp_path, 5)
    ids = pool.assign(resolve_hosts(["A", "B", "C"]))
    assert [(i.host.address, i.source.name) for i in ids] == [
        ("A", "node-1.pem"),
        ("B", "node-2.pem"),
        ("C", "node-3.pem"),
    ]
    assert len({i.source for i in ids}) == 3


def test_reordering_hosts_reassigns_identities(tmp_path: Path):
    pool = _pool(tmp_path, 5)
    first = {i.host.address: i.source.name for i in pool.assign(resolve_hosts(["A", "B"]))}
    second = {i.host.address: i.source.name for i in pool.assign(resolve_hosts(["B", "A"]))}
    assert first == {"A": "node-1.pem", "B": "node-2.pem"}
    assert second == {"B": "node-1.pem", "A": "node-2.pem"}


def test_more_hosts_than_pool_raises(tmp_path: Path):
    pool = _pool(tmp_path, 2)
    with pytest.raises(PoolExhaustedError) as ei:
        pool.assign(resolve_hosts(["a", "b", "c"]))
    assert ei.value.position == 3
    assert ei.value.pool_size == 2


def test_stage_copies_to_host_keyed_path_and_overwrites(tmp_path: Path):
    pool = _pool(tmp_path, 2)
    staging = tmp_path / "stage"
    [a, b] = pool.assign(resolve_hosts(["10.0.0.1", "10.0.0.2"]))

    pa = pool.stage(a, staging)
    pb = pool.stage(b, staging)
    assert pa == staging / "10.0.0.1.pem"
    assert pa.read_text() == "key-1"
    assert pb.read_text() == "key-2"
    assert stat.S_IMODE(os.stat(pa).st_mode) == 0o600

    # re-running replaces, never appends
    pool.stage(a, staging)
    assert pa.read_text() == "key-1"
