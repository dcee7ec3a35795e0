"""Exceptions raised by key parameter handling."""


class KeyParameterError(Exception):
    """Base class for key parameter errors."""


class InvalidParameter(KeyParameterError, ValueError):
    """
    A construction argument violates the scheme's constraints.

    Attributes:
        parameter: Name of the offending parameter
    """

    def __init__(self, parameter: str, message: str):
        super().__init__(message)
        self.parameter = parameter


class AlreadyBound(KeyParameterError, RuntimeError):
    """Share fingerprints were already bound to this key."""
