# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/valfleet/errors.py
from __future__ import annotations

from typing import Optional


class FleetError(RuntimeError):
    """Base class for orchestration failures."""


class ConfigurationError(FleetError):
    """Missing or invalid CLI input / config file."""


class PoolExhaustedError(FleetError):
    """More hosts than identities in the pool."""

    def __init__(self, position: int, pool_size: int, directory: str):
        self.position = position
        self.pool_size = pool_size
        super().__init__(
            f"No identity for position {position}: pool at {directory} "
            f"holds {pool_size} identities"
        )


class TemplateMismatchError(FleetError):
    """A substitution target is absent from the baseline template."""

    def __init__(self, field: str, document: str):
        self.field = field
        self.document = document
        super().__init__(f"Field '{field}' not found in {document}")


class UnknownActionError(FleetError):
    def __init__(self, action: str):
        self.action = action
        super().__init__(f"invalid action {action}")


class RemoteExecutionError(FleetError):
    """The fanned-out command failed on one (or more) hosts."""

    def __init__(self, host: str, message: str, returncode: Optional[int] = None):
        self.host = host
        self.returncode = returncode
        super().__init__(f"[{host}] {message}")
