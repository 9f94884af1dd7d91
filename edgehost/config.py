"""Router configuration loaded from edgehost.yml and EDGEHOST_* environment variables"""

import logging
import os
import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Mapping

import yaml

from .errors import ConfigError

logger = logging.getLogger("edgehost.config")

DNS_LABEL_PATTERN = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")

# Environment variable -> RouterConfig field
ENV_FIELDS = {
    "EDGEHOST_DOMAIN": "domain",
    "EDGEHOST_MARKETING_SUBDOMAIN": "marketing_subdomain",
    "EDGEHOST_SUBDOMAINS": "subdomains_raw",
    "EDGEHOST_BUCKET_NAME": "bucket_name",
    "EDGEHOST_BUCKET_APP_ROOT": "bucket_app_root",
    "EDGEHOST_COMPUTE_URL": "compute_url",
    "EDGEHOST_OBJECT_STORE": "object_store",
    "EDGEHOST_OBJECT_STORE_ENDPOINT": "object_store_endpoint",
    "EDGEHOST_INTERNAL_PREFIX": "internal_prefix",
    "EDGEHOST_CONNECT_TIMEOUT": "connect_timeout",
    "EDGEHOST_READ_TIMEOUT": "read_timeout",
    "EDGEHOST_MAX_CONNECTIONS": "max_connections",
    "EDGEHOST_MAX_KEEPALIVE": "max_keepalive",
}

# YAML keys that differ from the dataclass field names
YAML_ALIASES = {
    "subdomains": "subdomains_raw",
}


def parse_subdomains(raw: str | None) -> frozenset[str]:
    """
    Build the set of known section subdomains from a comma-separated list.

    Entries are stripped of surrounding whitespace and empty entries are
    dropped. Matching against the result is exact and case-sensitive.
    """
    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class RouterConfig:
    """
    Immutable router settings shared by every request.

    Schema (edgehost.yml):
        domain: str               # Canonical domain, e.g. example.com
        marketing_subdomain: str  # Subdomain prefix of the marketing platform
        subdomains: str           # Comma-separated section subdomains
        bucket_name: str          # Object-storage bucket host
        bucket_app_root: str      # Bucket folder holding static-maps/establishments
        compute_url: str          # Compute-platform host serving /seo
        object_store: str         # s3://bucket, a directory path, or empty
        object_store_endpoint: str # Endpoint URL for S3-compatible stores (R2, MinIO)
    """

    domain: str = "localhost"
    marketing_subdomain: str = ""
    subdomains_raw: str = ""
    bucket_name: str = ""
    bucket_app_root: str = "app-root"
    compute_url: str = ""
    object_store: str = ""
    object_store_endpoint: str = ""
    internal_prefix: str = "/__edgehost"
    connect_timeout: float = 5.0
    read_timeout: float = 30.0
    max_connections: int = 100
    max_keepalive: int = 20
    subdomains: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "domain", self.domain.strip().strip(".").lower())
        object.__setattr__(self, "internal_prefix", self.internal_prefix.rstrip("/"))
        object.__setattr__(self, "subdomains", parse_subdomains(self.subdomains_raw))

    @property
    def main_origin(self) -> str:
        return f"https://{self.domain}"

    @property
    def marketing_origin(self) -> str:
        return f"https://{self.marketing_subdomain}.{self.domain}"

    def matcher(self):
        """Build the subdomain/path matcher for this configuration"""
        from .router.matcher import SubdomainPathMatcher

        return SubdomainPathMatcher(self.subdomains)

    def with_overrides(self, **overrides) -> "RouterConfig":
        return replace(self, **overrides)


def _coerce(name: str, value):
    """Convert a raw env/YAML value to the type of the named field"""
    if name in {"connect_timeout", "read_timeout"}:
        return float(value)
    if name in {"max_connections", "max_keepalive"}:
        return int(value)
    if name == "subdomains_raw" and isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return str(value)


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def load_config(path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> RouterConfig:
    """
    Load configuration from an optional YAML file, then apply environment overrides.

    Args:
        path: YAML file to read (defaults to $EDGEHOST_CONFIG when set)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        RouterConfig instance

    Raises:
        ConfigError: If the YAML file cannot be read or a value has the wrong type
    """
    environ = os.environ if environ is None else environ
    known = {f.name for f in fields(RouterConfig) if f.init}
    values: dict = {}

    config_path = path or environ.get("EDGEHOST_CONFIG")
    if config_path:
        config_path = Path(config_path)
        for key, value in _read_yaml(config_path).items():
            name = YAML_ALIASES.get(key, key)
            if name not in known:
                logger.warning("Ignoring unknown config key %r in %s", key, config_path)
                continue
            if value is not None:
                values[name] = value
        logger.debug("Loaded config file %s", config_path)

    for env_name, name in ENV_FIELDS.items():
        value = environ.get(env_name)
        if value is not None and value.strip():
            values[name] = value.strip()

    try:
        values = {name: _coerce(name, value) for name, value in values.items()}
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}") from e
    return RouterConfig(**values)


def validate_config(config: RouterConfig) -> tuple[bool, list[str]]:
    """
    Check a configuration for values the router cannot use sensibly.

    Problems are reported, never fatal: an empty subdomain list only means
    every request reaches the marketing fallback.

    Returns:
        (is_valid, errors) tuple
    """
    errors = []

    if not config.domain:
        errors.append("domain is empty")
    elif "/" in config.domain or config.domain.startswith("http"):
        errors.append("domain must be a hostname only (no scheme or path)")

    if not config.marketing_subdomain:
        errors.append("marketing_subdomain is empty; foreign hosts will not be redirected to the main domain")

    for name in sorted(config.subdomains):
        if not DNS_LABEL_PATTERN.match(name):
            errors.append(f"subdomain {name!r} is not a valid DNS label")

    if not config.bucket_name:
        errors.append("bucket_name is empty; bucket sections cannot be proxied")

    if config.compute_url.startswith(("http://", "https://")):
        errors.append("compute_url must be a host (the router adds the scheme)")

    if not config.internal_prefix.startswith("/"):
        errors.append("internal_prefix must start with '/'")

    return (not errors, errors)
