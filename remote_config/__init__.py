"""
Client for component configuration bundles served by a remote configuration server.

This package is responsible for:
* Downloading a component's zip bundle and extracting it to a unique directory.
* Parsing the bundle's YAML files on demand, with bounded-lifetime caching.
* Resolving "<file>|<a>:<b>" keys to typed values.
"""

from remote_config.domain.models import ConfigError, ErrorKind, Result, ResultError
from remote_config.services.caching import BoundedCache
from remote_config.services.downloader import ServerConfigDownloader
from remote_config.services.provider import FileConfigProvider

__all__ = [
    "BoundedCache",
    "ConfigError",
    "ErrorKind",
    "FileConfigProvider",
    "Result",
    "ResultError",
    "ServerConfigDownloader",
]
