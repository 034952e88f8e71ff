"""Exceptions raised by the input, selector-database and configuration layers.

The decode/split/analyze core never raises for any byte input; everything
here belongs to the boundary around it.
"""


class ScentError(Exception):
    """Base class for all errors reported to the user."""


class InputError(ScentError):
    """Bytecode input could not be read or is not valid hex."""


class SelectorDatabaseError(ScentError):
    """The selector dictionary file is unreadable or malformed."""


class ConfigError(ScentError):
    """The settings file is malformed."""
