from __future__ import annotations

import numpy as np

__all__ = [
    "RBFSweepError",
    "ConfigurationError",
    "InvalidModeError",
    "GeometryError",
    "SingularSystemError",
]


class RBFSweepError(Exception):
    """Base class for all errors raised by rbfsweep."""


class ConfigurationError(RBFSweepError, ValueError):
    """Missing, inconsistent or uninitialised run configuration."""


class InvalidModeError(ConfigurationError):
    """Unknown solution mode, kernel name or boundary-condition mode."""


class GeometryError(RBFSweepError, ValueError):
    """The requested point sets cannot be placed inside the ball."""


class SingularSystemError(RBFSweepError, np.linalg.LinAlgError):
    """The collocation system is singular or its solve is not trustworthy."""

    def __init__(self, message: str, *, residual: float | None = None, condition: float | None = None) -> None:
        super().__init__(message)
        self.residual = residual
        self.condition = condition
