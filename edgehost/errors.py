"""Exception types raised by edgehost"""


class EdgehostError(Exception):
    """Base class for edgehost errors"""


class ConfigError(EdgehostError):
    """Configuration could not be read or names an unusable backend"""
