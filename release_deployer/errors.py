"""Exception hierarchy for the release deployer.

Step failures are not exceptions: they travel as ``StepResult`` values and are
handled by the rollback path. Only configuration problems escape to the CLI.
"""

from __future__ import annotations


class DeployerError(RuntimeError):
    """Base exception for deployment failures."""


class ConfigurationError(DeployerError):
    """Raised when the configuration document is missing or invalid."""


class SymlinkError(DeployerError):
    """Raised when the production pointer cannot be swapped."""
