"""Error taxonomy for the convergence driver.

Input validation errors are raised before any side effect. Bootstrap errors
abort before the engine runs. Engine errors are never wrapped here.
"""

from __future__ import annotations


class ConvergeError(Exception):
    """Base class for all driver errors."""


class InputValidationError(ConvergeError, ValueError):
    """Raised when flags or overrides are malformed or conflict."""


class BootstrapError(ConvergeError):
    """Raised when a pre-convergence action (SSH key import) fails."""


class ClusterNotFoundError(ConvergeError):
    """Raised when the state store has no cluster with the requested name."""


class StateStoreError(ConvergeError):
    """Raised when a state store document is unreadable or malformed."""


class KubeconfigError(ConvergeError):
    """Raised when building or writing the kubeconfig fails."""


class EngineUnavailableError(ConvergeError):
    """Raised when no convergence engine can be resolved."""


class ConvergenceCancelled(ConvergeError):
    """Raised when the run was cancelled while the engine was converging."""
