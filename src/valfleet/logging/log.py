# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

#src/valfleet/logging/log.py

from __future__ import annotations

import logging
from pathlib import Path
from datetime import datetime, timezone
import uuid

DEFAULT_LOG_DIR = Path.home() / ".valfleet" / "logs"


def init_logging(
    *,
    base_dir: Path | None = None,
    action: str | None = None,
    name: str = "valfleet",
    verbose: bool = False,
) -> tuple[logging.Logger, str, Path]:
    """
    One log file per invocation, named after the action so that
    ``ls ~/.valfleet/logs`` reads as a history of what was run:

        valfleet-provision-20260101-120000-<run_id>.log

    The file always gets the full DEBUG trace (every host-prefixed output
    line included). The console shows INFO, or DEBUG with ``--debug``.
    """
    run_id = str(uuid.uuid4())

    base_dir = Path(base_dir) if base_dir is not None else DEFAULT_LOG_DIR
    base_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    stem = f"{name}-{action}" if action else name
    log_path = base_dir / f"{stem}-{ts}-{run_id}.log"

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    # re-initialising (tests, repeated CLI calls in one process) must not stack handlers
    for h in list(logger.handlers):
        h.close()
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-7s | %(threadName)-10s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # fanout workers interleave on the console; the host label already says who
    console_formatter = logging.Formatter("%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%H:%M:%S")

    fh = logging.FileHandler(log_path)
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(console_formatter)

    logger.addHandler(fh)
    logger.addHandler(ch)

    logger.debug("=== valfleet %s started ===", action or "run")
    logger.debug("run_id=%s", run_id)
    logger.debug("log_file=%s", log_path)
    logger.debug("console_level=%s", "DEBUG" if verbose else "INFO")

    return logger, run_id, log_path
