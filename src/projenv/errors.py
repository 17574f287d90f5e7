"""
Custom exception types for projenv.
"""

class ProjEnvException(Exception):
    """Base exception for all projenv errors."""
    pass

class PathError(ProjEnvException):
    """Raised when the project root does not exist or cannot be canonicalized."""
    pass

class ConfigError(ProjEnvException):
    """Raised when the settings file cannot be parsed."""
    pass

class SelfTestFailure(ProjEnvException):
    """Raised by the self-test on the first failed expectation."""
    pass
