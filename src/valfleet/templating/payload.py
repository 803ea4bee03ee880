# src/valfleet/templating/payload.py
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from pathlib import Path

from ..config.models import PayloadConfig, RemoteConfig

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


class PayloadRenderer:
    """Renders the install script that `setup` copies to and runs on each host."""

    def __init__(self, templates_dir: Path = TEMPLATES_DIR):
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def render(self, payload: PayloadConfig, remote: RemoteConfig) -> str:
        tmpl = self.env.get_template("payload.sh.j2")
        return tmpl.render(
            source_repo=payload.source_repo,
            storage_dir=payload.storage_dir,
            system_user=payload.system_user,
            binary_path=payload.binary_path,
            config_dir=remote.config_dir,
            service=remote.service,
        )

    def write(self, payload: PayloadConfig, remote: RemoteConfig, staging_dir: Path) -> Path:
        staging_dir.mkdir(parents=True, exist_ok=True)
        out = staging_dir / "payload.sh"
        out.write_text(self.render(payload, remote))
        out.chmod(0o755)
        return out
