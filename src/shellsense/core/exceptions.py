"""Custom exceptions for ShellSense."""


class ShellSenseError(Exception):
    """Base exception for all ShellSense errors."""


class ParseError(ShellSenseError):
    """Malformed command string (e.g. bad variable substitution)."""


class ConfigError(ShellSenseError):
    """Configuration error."""


class SpecError(ShellSenseError):
    """Invalid specification file or shape."""


class RenameError(ShellSenseError):
    """A rename or definition request that cannot be honored."""
