"""
Download and extract a component's configuration bundle.

The configuration server answers GET <url>/get/<component> with a zip archive.
The archive is written to a temporary file, extracted into a freshly created
directory and the temporary file is removed again, whatever the outcome.
"""
from __future__ import annotations

import logging
import uuid
import zipfile
from pathlib import Path
from typing import Optional

import aiofiles
import httpx

from remote_config.domain.models import ErrorKind, Result, describe_exception
from remote_config.services.base import ConfigDownloader

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


class ServerConfigDownloader(ConfigDownloader):
    """
    Fetches configuration bundles over HTTP.

    Bundle directories and temporary archives are created under data_dir with
    uuid4 names, so concurrent downloads never collide. The downloader owns its
    httpx client (created on demand) and closes it in dispose().
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        data_dir: Optional[Path] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._client = client or httpx.AsyncClient(follow_redirects=True, timeout=timeout)
        self.data_dir = Path(data_dir or Path.cwd()).resolve()

    async def dispose(self) -> None:
        await self._client.aclose()

    async def download(self, url: str, component: str) -> Result[Path]:
        """
        Download the bundle for component and extract it.

        Args:
            url: Base address of the configuration server
            component: Component identifier appended as <url>/get/<component>

        Returns:
            Result holding the absolute path of the new bundle directory. On
            failure the directory may still exist, possibly partially filled.
        """
        try:
            request_url = f"{url.rstrip('/')}/get/{component}"
            target_dir = self.data_dir / uuid.uuid4().hex
            target_dir.mkdir(parents=True)

            logger.info(f"Downloading configuration for {component} from {request_url}...")
            result = await self._download_config(request_url, target_dir)
            if result.is_err:
                logger.warning(f"Failed to download configuration for {component} ({result.kind.value}) from {request_url}")
                return Result.from_error(result.unwrap_err())

            logger.info(f"Configuration for {component} extracted to: {target_dir}")
            return Result.ok(target_dir)
        except Exception as e:
            logger.error(f"Unexpected error downloading configuration for {component}: {e}", exc_info=True)
            return Result.err(ErrorKind.EXCEPTION_THROWN, describe_exception(e))

    async def _download_config(self, url: str, target_dir: Path) -> Result[Path]:
        package_path = self.data_dir / f"{uuid.uuid4().hex}.zip"

        try:
            response = await self._client.get(url)

            if not response.is_success:
                return Result.err(
                    ErrorKind.DOWNLOAD_FAILURE,
                    f"failed to download zip file containing configuration with url: {url} "
                    f"(status {response.status_code})",
                )

            async with aiofiles.open(package_path, "wb") as f:
                await f.write(response.content)

            self._extract_zip(package_path, target_dir)
            return Result.ok(target_dir)
        except Exception as e:
            return Result.err(
                ErrorKind.DOWNLOAD_FAILURE,
                describe_exception(e, " while downloading configuration"),
            )
        finally:
            package_path.unlink(missing_ok=True)

    def _extract_zip(self, package_path: Path, target_dir: Path) -> None:
        # extractall overwrites existing files and strips absolute / parent path parts.
        with zipfile.ZipFile(package_path, "r") as zip_ref:
            zip_ref.extractall(target_dir)
