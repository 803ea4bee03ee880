import os
from pathlib import Path

from valfleet.config.models import PayloadConfig, RemoteConfig
from valfleet.templating.payload import PayloadRenderer


def test_payload_uses_service_and_paths():
    remote = RemoteConfig(service="validator-node", config_dir="/etc/validator")
    payload = PayloadConfig(source_repo="https://example.test/node.git", system_user="validator")

    script = PayloadRenderer().render(payload, remote)

    assert script.startswith("#!/bin/sh")
    assert "SOURCE=https://example.test/node.git" in script
    assert "/etc/systemd/system/validator-node.service" in script
    assert "ExecStart=/usr/local/bin/casper-node validator /etc/validator/config.toml" in script
    assert "User=validator" in script
    assert "{{" not in script


def test_write_puts_executable_script_in_staging(tmp_path: Path):
    out = PayloadRenderer().write(PayloadConfig(), RemoteConfig(), tmp_path / "stage")
    assert out == tmp_path / "stage" / "payload.sh"
    assert os.access(out, os.X_OK)
    assert "systemctl daemon-reload" in out.read_text()
