"""
Error types shared by the training pipeline and the model codec.
"""


class ConfigurationError(ValueError):
    """A training parameter is missing or invalid."""


class InsufficientTrainingDataError(Exception):
    """The indexed training data cannot produce a usable model."""


class ModelFormatError(OSError):
    """A persisted model is malformed or a value cannot be written in the format."""
