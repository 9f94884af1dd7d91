"""
Edgehost - edge reverse-proxy router for a single canonical domain
Serves independently deployed section origins under path-prefixed URLs
"""

__version__ = "1.0.0"

from .config import RouterConfig, load_config, validate_config
from .errors import ConfigError, EdgehostError

__all__ = [
    "RouterConfig",
    "load_config",
    "validate_config",
    "EdgehostError",
    "ConfigError",
    "__version__",
]
