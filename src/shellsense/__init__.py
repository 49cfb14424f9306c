"""ShellSense — command-line language intelligence for shell-like command strings."""

__version__ = "0.1.0"
