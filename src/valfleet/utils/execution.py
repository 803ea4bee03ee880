# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from dataclasses import dataclass
from typing import Optional

@dataclass(frozen=True)
class ExecutionContext:
    """
    controls how fanned-out commands are executed
    """

    dry_run: bool = False              # prepare local files, log commands, touch no host
    max_parallel: Optional[int] = None  # None = one worker per host
