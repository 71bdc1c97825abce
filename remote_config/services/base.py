from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Type, TypeVar

from remote_config.domain.models import Result

T = TypeVar("T")


class ConfigDownloader(ABC):
    """
    Abstract base class for fetching a component's configuration bundle.
    """

    @abstractmethod
    async def download(self, url: str, component: str) -> Result[Path]:
        """
        Fetch the bundle for component from the server at url and unpack it.
        Returns the path of a newly created directory holding the bundle.
        """
        pass

    @abstractmethod
    async def dispose(self) -> None:
        """Release the transport owned by this downloader."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()


class ConfigProvider(ABC):
    """
    Abstract base class for resolving composite keys to typed values.
    """

    @abstractmethod
    async def get(self, key: str, value_type: Type[T] = object) -> Result[T]:
        """Resolve a "<file>|<a>:<b>" key to a value of value_type."""
        pass

    @abstractmethod
    def dispose(self) -> None:
        """Tear down everything the provider owns."""
        pass

    async def get_value(self, key: str, value_type: Type[T] = object, default: Any = None) -> Any:
        """Resolve key and return the bare value, or default on any failure."""
        result = await self.get(key, value_type)
        return result.unwrap_or(default)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()
