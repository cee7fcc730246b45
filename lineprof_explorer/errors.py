"""Error types for the profile explorer."""


class ExplorerError(Exception):
    """Base class for profile explorer errors."""


class SelectorNotFound(ExplorerError, LookupError):
    """A focus selector matched no node in the tree."""


class MalformedSelector(ExplorerError, ValueError):
    """Selector text could not be parsed into a known selector."""


class UnreadableSourcePath(ExplorerError, OSError):
    """A referenced source file could not be read for alignment."""


class EmptyStackInvariantViolation(ExplorerError, RuntimeError):
    """The navigation stack lost its root frame. Always a bug."""
