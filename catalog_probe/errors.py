"""
Exception taxonomy for probes and runs.

Per-code failures (``ProbeError`` subclasses) never abort a run: they are
converted into ``Error`` outcomes at the session/pool boundary. Run-level
errors (config, input, output) are fatal and surface from the orchestrator.
"""

from __future__ import annotations

from typing import Optional


class CatalogProbeError(Exception):
    """Base exception for the package."""


class ProbeError(CatalogProbeError):
    """Base exception for failures while probing a single code."""

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class NavigationError(ProbeError):
    """Raised when the code's page cannot be loaded (network, DNS, HTTP)."""


class FrameTimeoutError(ProbeError):
    """Raised when the embedded frame marker never appears."""


class ExtractionError(ProbeError):
    """Raised when the frame exists but its content cannot be read."""


class ResourceError(ProbeError):
    """Raised when a renderer or session cannot be created."""


class ConfigError(CatalogProbeError, ValueError):
    """Raised when the configuration is invalid."""


class InputError(CatalogProbeError):
    """Raised when the code list cannot be read."""


class OutputError(CatalogProbeError):
    """Raised when a result sink or summary file cannot be written."""


class IncompleteResultError(CatalogProbeError):
    """Raised when a finished run left result slots unfilled."""

    def __init__(self, missing: list[int]) -> None:
        super().__init__(f"{len(missing)} result slot(s) never filled: {missing[:10]}")
        self.missing = missing
