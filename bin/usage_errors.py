"""Exceptions raised by the usage collector."""


class UsageLogError(Exception):
    """Base class for every failure the collector reports."""


class ConfigError(UsageLogError):
    """A configuration value could not be used."""


class ToolNotFoundError(UsageLogError):
    """The license status tool could not be located."""


class ToolInvocationError(UsageLogError):
    """The status tool could not be run, or its output could not be read."""


class EmptyOutputError(UsageLogError):
    """The status tool ran but produced no output."""

    def __init__(self, message, stderr=""):
        super().__init__(message)
        self.stderr = stderr


class PersistenceError(UsageLogError):
    """A usage file could not be written."""

    def __init__(self, path, reason):
        super().__init__(f"cannot write {path}: {reason}")
        self.path = path
        self.reason = reason
