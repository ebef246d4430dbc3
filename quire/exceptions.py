class QuireError(Exception):
    """Base class for every error raised by quire."""


class InvalidArgument(QuireError, TypeError):
    """A function received a value of the wrong shape."""


class EmptyCollection(QuireError, ValueError):
    """A random pick was requested from a collection with no elements."""


class ConfigError(QuireError):
    pass


class ContentError(QuireError):
    pass


class BuildError(QuireError):
    pass
