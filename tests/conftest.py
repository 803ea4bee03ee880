import logging
import textwrap
from pathlib import Path

import pytest

from valfleet.config.models import FleetConfig


CHAINSPEC = textwrap.dedent("""\
    [network]
    name = 'casper-example'
    timestamp = 1600454700000

    [core]
    era_duration = '30seconds'
    activation_timestamp = 0
""")

NODE_CONFIG = textwrap.dedent("""\
    [node]
    chainspec_config_path = 'chainspec.toml'

    [network]
    public_address = '127.0.0.1:34553'
    bind_address = '0.0.0.0:34553'
    known_addresses = ['127.0.0.1:34553']

    [http_server]
    address = '0.0.0.0:7777'
""")


def make_workspace(root: Path, pool_size: int = 5) -> Path:
    keys = root / "resources" / "local" / "secret_keys"
    keys.mkdir(parents=True)
    for i in range(1, pool_size + 1):
        (keys / f"node-{i}.pem").write_text(f"-----KEY {i}-----\n")
    (root / "resources" / "production").mkdir(parents=True)
    (root / "resources" / "production" / "chainspec.toml").write_text(CHAINSPEC)
    (root / "resources" / "local" / "config.toml").write_text(NODE_CONFIG)
    (root / "resources" / "local" / "accounts.csv").write_text("key,1000,10\n")
    return root


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    return make_workspace(tmp_path / "ws")


@pytest.fixture
def fleet_cfg(workspace: Path, tmp_path: Path) -> FleetConfig:
    return FleetConfig(
        workspace=workspace,
        staging_dir=tmp_path / "stage",
        ledger_path=tmp_path / "state" / "network.json",
    )


@pytest.fixture(autouse=True)
def _reset_valfleet_logger():
    # the CLI reconfigures the "valfleet" logger; undo it so caplog keeps working
    yield
    logger = logging.getLogger("valfleet")
    for h in list(logger.handlers):
        h.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)

    def of(self, cls):
        return [e for e in self.events if isinstance(e, cls)]


@pytest.fixture
def capture() -> Capture:
    return Capture()
