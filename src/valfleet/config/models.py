# src/valfleet/config/models.py

from pathlib import Path
from typing import Literal, Optional
from pydantic import BaseModel, Field


class IdentityPoolConfig(BaseModel):
    directory: Path = Path("resources/local/secret_keys")
    filename_pattern: str = "node-{position}.pem"   # one file per position, 1-based


class TemplatesConfig(BaseModel):
    """Baseline documents. Never modified; working copies go to staging_dir."""
    chainspec: Path = Path("resources/production/chainspec.toml")
    node_config: Path = Path("resources/local/config.toml")
    accounts: Path = Path("resources/local/accounts.csv")


class NetworkConfig(BaseModel):
    gossip_port: int = 34553
    status_port: int = 7777
    status_path: str = "/status"
    genesis_offset_seconds: float = Field(300.0, gt=0)
    start_grace_seconds: float = Field(5.0, ge=0)
    timestamp_format: Literal["epoch_millis", "rfc3339"] = "epoch_millis"


class RemoteConfig(BaseModel):
    user: str = "root"
    port: int = 22
    ssh_key: Optional[Path] = None
    config_dir: str = "/etc/casper-node"
    service: str = "casper-node"
    payload_path: str = "/tmp/payload.sh"
    connect_timeout: float = 20.0
    status_timeout: float = 10.0


class PayloadConfig(BaseModel):
    source_repo: str = "https://github.com/CasperLabs/casper-node"
    storage_dir: str = "/var/lib/casper-node/storage"
    system_user: str = "casper"
    binary_path: str = "/usr/local/bin/casper-node"


class FleetConfig(BaseModel):
    workspace: Path = Path(".")
    staging_dir: Path = Path("/tmp")
    ledger_path: Optional[Path] = Path.home() / ".valfleet" / "network.json"
    runner: Literal["native", "xpanes"] = "native"

    identity: IdentityPoolConfig = IdentityPoolConfig()
    templates: TemplatesConfig = TemplatesConfig()
    network: NetworkConfig = NetworkConfig()
    remote: RemoteConfig = RemoteConfig()
    payload: PayloadConfig = PayloadConfig()

    # Helper method
    def resolve(self, path: Path) -> Path:
        """Resolve a configured path against the workspace root."""
        path = Path(path).expanduser()
        if path.is_absolute():
            return path
        return (self.workspace / path).resolve()
