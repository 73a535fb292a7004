"""
Composition runner - Drives one export from Timeline to render output

Flow:
  1. flatten the timeline and refuse it when it does not validate
  2. fetch the source bytes of every content instruction concurrently,
     including the paired voice of figures
  3. hand instructions to the render backend strictly in flatten order
  4. finish the output under a temporary name, then rename it into place

Any failure (or cancellation) tears everything down: outstanding fetches
are cancelled, the backend output and downloaded files are removed, and
the error propagates to the caller.
"""

import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
from urllib.parse import urljoin, urlparse
from uuid import uuid4

import aiofiles
import aiohttp

from backend.subtitle_utils import SubtitleUtils
from config import Settings, settings as default_settings
from core.compositor import Instruction, flatten
from core.job import build_job_options
from core.render_backend import RenderBackend
from models import Timeline
from models.errors import AssetFetchError, CompositionValidationError, RenderOutputError
from utils.logger import logger


class AssetFetcher:
    """
    Resolves an instruction url to a local file.

    - local paths and file:// urls are used in place
    - relative urls are joined to RESOURCE_BASE_URL
    - http(s) urls are downloaded into TEMP_DIR

    Downloaded files are tracked so cleanup() can remove them.
    """

    CHUNK_SIZE = 8192

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.downloads: List[Path] = []
        self._session: Optional[aiohttp.ClientSession] = None

    def resolve(self, url: str) -> str:
        """Return a local path or an absolute http(s) url for *url*"""
        parsed = urlparse(url)
        if parsed.scheme in ("http", "https"):
            return url
        if parsed.scheme == "file":
            return parsed.path
        if Path(url).exists() or not self.settings.RESOURCE_BASE_URL:
            return url
        return urljoin(self.settings.RESOURCE_BASE_URL, url)

    async def fetch(self, url: Optional[str], index: int) -> Path:
        if not url:
            raise AssetFetchError(str(url), index, "instruction has no url")

        target = self.resolve(url)
        if urlparse(target).scheme in ("http", "https"):
            return await self._download(target, index)

        path = Path(target)
        if not path.is_file():
            raise AssetFetchError(url, index, "file not found")
        return path

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.settings.FETCH_TIMEOUT)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def _download(self, url: str, index: int) -> Path:
        temp_dir = Path(self.settings.TEMP_DIR)
        temp_dir.mkdir(parents=True, exist_ok=True)
        suffix = Path(urlparse(url).path).suffix
        download_path = temp_dir / f"{uuid4().hex}{suffix}"
        part_path = download_path.with_name(download_path.name + ".part")

        logger.debug(f"Downloading #{index}: {url}")
        session = await self._get_session()
        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise AssetFetchError(url, index, f"HTTP {response.status}")
                async with aiofiles.open(part_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
            part_path.replace(download_path)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            part_path.unlink(missing_ok=True)
            raise AssetFetchError(url, index, str(e) or type(e).__name__) from e
        except BaseException:
            # AssetFetchError from the status check, or cancellation
            part_path.unlink(missing_ok=True)
            raise

        self.downloads.append(download_path)
        return download_path

    async def cleanup(self) -> None:
        """Remove every file this fetcher downloaded"""
        for path in self.downloads:
            path.unlink(missing_ok=True)
        if self.downloads:
            logger.debug(f"Removed {len(self.downloads)} downloaded assets")
        self.downloads = []

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


class CompositionRunner:
    """Runs exports of timelines through a render backend"""

    def __init__(
        self,
        backend: RenderBackend,
        fetcher: Optional[AssetFetcher] = None,
        settings: Optional[Settings] = None,
    ):
        self.backend = backend
        self.settings = settings or default_settings
        self.fetcher = fetcher or AssetFetcher(self.settings)

    async def run(self, timeline: Timeline, output_path: Union[str, Path]) -> Path:
        """
        Compose *timeline* into *output_path*.

        Returns the final output path. Raises CompositionValidationError
        (nothing touched), AssetFetchError or RenderOutputError.
        """
        result = flatten(timeline)
        if not result.valid:
            raise CompositionValidationError(result.diagnostics)

        output_path = Path(output_path)
        part_path = output_path.with_name(output_path.name + ".part")
        srt_path: Optional[Path] = None

        content = result.content
        semaphore = asyncio.Semaphore(max(1, self.settings.MAX_CONCURRENT_FETCHES))

        async def fetch(index: int, instruction: Instruction):
            async with semaphore:
                source_path = await self._fetch(instruction.url, index)
                # Figures carry their paired voice as a second source
                audio_path = None
                if instruction.audio_url:
                    audio_path = await self._fetch(instruction.audio_url, index)
                return index, source_path, audio_path

        logger.info(f"Composing {timeline!r} -> {output_path} ({len(content)} units)")
        tasks = [asyncio.create_task(fetch(i, ins)) for i, ins in enumerate(content)]
        try:
            subtitle_url = None
            if timeline.subtitles.exportable:
                srt_path = output_path.with_suffix(".srt")
                self._write(SubtitleUtils.write_srt, timeline.subtitles.entries, srt_path)
                subtitle_url = str(srt_path)
            options = build_job_options(result, subtitle_url, settings=self.settings)

            await self._render(part_path, self.backend.open, part_path, options)

            # Reorder buffer: submit strictly in flatten order
            ready: Dict[int, Tuple[Path, Optional[Path]]] = {}
            next_index = 0
            for finished in asyncio.as_completed(tasks):
                index, source_path, audio_path = await finished
                ready[index] = (source_path, audio_path)
                while next_index in ready:
                    await self._render(part_path, self.backend.submit, content[next_index], *ready.pop(next_index))
                    next_index += 1

            await self._render(part_path, self.backend.close)
            self._write(part_path.replace, output_path)
        except (Exception, asyncio.CancelledError) as e:
            logger.error(f"Composition of {timeline!r} failed: {type(e).__name__}: {e}")
            await self._teardown(tasks, part_path, srt_path)
            raise
        finally:
            await self.fetcher.close()

        logger.info(f"Composition complete: {output_path}")
        return output_path

    async def _fetch(self, url: Optional[str], index: int) -> Path:
        try:
            return await self.fetcher.fetch(url, index)
        except AssetFetchError:
            raise
        except Exception as e:
            raise AssetFetchError(str(url), index, str(e)) from e

    async def _render(self, path: Path, call, *args):
        try:
            return await call(*args)
        except OSError as e:
            raise RenderOutputError(str(path), str(e)) from e

    @staticmethod
    def _write(call, *args):
        try:
            return call(*args)
        except OSError as e:
            raise RenderOutputError(str(args[-1]), str(e)) from e

    async def _teardown(self, tasks: List[asyncio.Task], part_path: Path, srt_path: Optional[Path]) -> None:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        try:
            await self.backend.discard()
        finally:
            part_path.unlink(missing_ok=True)
            if srt_path is not None:
                srt_path.unlink(missing_ok=True)
            await self.fetcher.cleanup()
