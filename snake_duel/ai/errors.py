"""
Exceptions raised by the learning engine.

Insufficient replay data and off-interval training calls are normal control
flow and never raise.
"""


class SnakeDuelError(Exception):
    """Base class for all project errors."""


class NetworkConfigError(SnakeDuelError, ValueError):
    """Malformed network dimensions or hyperparameters."""


class ShapeMismatchError(SnakeDuelError, ValueError):
    """A vector or index does not fit the configured network/buffer shape."""


class ModelLoadError(SnakeDuelError, RuntimeError):
    """A saved model could not be read or decoded."""
