"""
Resolve composite configuration keys against an extracted bundle directory.

Keys have the form "<relative file>|<segment>:<segment>:...". The file is read
and parsed on first use, then kept in a BoundedCache under its absolute path,
so every lookup into the same file shares one parsed document.
"""
from __future__ import annotations

import logging
import shutil
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Optional, Type, TypeVar

import aiofiles
import yaml

from remote_config.domain.config_utils import coerce, parse_document, split_key, walk
from remote_config.domain.models import ErrorKind, Result, describe_exception
from remote_config.services.base import ConfigProvider
from remote_config.services.caching import BoundedCache, Clock

logger = logging.getLogger(__name__)

T = TypeVar("T")

DocumentParser = Callable[[str], Optional[Any]]

DEFAULT_ENTRY_TTL = timedelta(minutes=30)
DEFAULT_MAX_LIFETIME = timedelta(hours=1)


class FileConfigProvider(ConfigProvider):
    """
    Typed lookups into the YAML files of one bundle directory.

    The provider owns root_directory and its cache: dispose() deletes the
    directory recursively and empties the cache. Two lookups that miss the
    cache at the same time may both parse the file; the later write wins.
    """

    def __init__(
        self,
        root_directory: Path,
        cache: Optional[BoundedCache] = None,
        entry_ttl: timedelta = DEFAULT_ENTRY_TTL,
        max_lifetime: timedelta = DEFAULT_MAX_LIFETIME,
        parser: DocumentParser = parse_document,
        clock: Clock = time.monotonic,
    ):
        self.root_directory = Path(root_directory).resolve()
        self.entry_ttl = entry_ttl
        self._cache = cache if cache is not None else BoundedCache(max_lifetime, clock=clock)
        self._parser = parser

    def dispose(self) -> None:
        if self.root_directory.exists():
            shutil.rmtree(self.root_directory)
            logger.info(f"Removed configuration directory: {self.root_directory}")
        self._cache.dispose()

    async def get(self, key: str, value_type: Type[T] = object) -> Result[T]:
        """
        Resolve key to a value of value_type.

        Errors:
            INVALID_ARGUMENTS: malformed key, missing or null path segment,
                unconvertible value
            NOT_FOUND: the addressed file does not exist
            INVALID_FILE_CONTENT: the file is empty, not a YAML mapping or
                holds a recursive alias
            EXCEPTION_THROWN: any other failure while resolving
        """
        try:
            return await self._resolve(key, value_type)
        except Exception as e:
            logger.error(f"Unexpected error resolving {key}: {e}", exc_info=True)
            return Result.err(ErrorKind.EXCEPTION_THROWN, describe_exception(e, f" while resolving {key}"))

    async def _resolve(self, key: str, value_type: Type[T]) -> Result[T]:
        key_result = split_key(key)
        if key_result.is_err:
            return Result.from_error(key_result.unwrap_err())
        file_name, segments = key_result.unwrap()

        path_result = self._resolve_file_path(file_name)
        if path_result.is_err:
            return Result.from_error(path_result.unwrap_err())

        document_result = await self._load_document(path_result.unwrap())
        if document_result.is_err:
            return Result.from_error(document_result.unwrap_err())

        node_result = walk(document_result.unwrap(), segments)
        if node_result.is_err:
            return Result.from_error(node_result.unwrap_err())

        return coerce(node_result.unwrap(), value_type)

    def _resolve_file_path(self, file_name: str) -> Result[Path]:
        try:
            file_path = (self.root_directory / file_name).resolve()
        except (OSError, ValueError) as e:
            return Result.err(ErrorKind.INVALID_ARGUMENTS, f"invalid file name '{file_name}': {e}")
        if not file_path.is_relative_to(self.root_directory):
            return Result.err(
                ErrorKind.INVALID_ARGUMENTS,
                f"file '{file_name}' is outside of {self.root_directory}",
            )
        return Result.ok(file_path)

    async def _load_document(self, file_path: Path) -> Result[Any]:
        cache_key = str(file_path)
        cached = self._cache.try_get(cache_key)
        if cached.is_ok:
            logger.debug(f"Cache hit for {cache_key}")
            return cached

        if not file_path.is_file():
            return Result.err(ErrorKind.NOT_FOUND, f"could not find file: {file_path}")

        try:
            async with aiofiles.open(file_path, "r", encoding="utf-8") as f:
                content = await f.read()
        except UnicodeDecodeError as e:
            return Result.err(ErrorKind.INVALID_FILE_CONTENT, f"invalid file content in {file_path}: {e}")
        except OSError as e:
            return Result.err(ErrorKind.NOT_FOUND, f"could not read file {file_path}: {e}")

        logger.debug(f"Parsing {file_path}")
        try:
            document = self._parser(content)
        except (yaml.YAMLError, ValueError, RecursionError) as e:
            logger.warning(f"Failed to parse {file_path}: {e}")
            return Result.err(ErrorKind.INVALID_FILE_CONTENT, f"invalid file content in {file_path}: {e}")

        if not isinstance(document, dict):
            return Result.err(ErrorKind.INVALID_FILE_CONTENT, f"invalid file content in {file_path}")

        self._cache.set(cache_key, document, self.entry_ttl)
        return Result.ok(document)
