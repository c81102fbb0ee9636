"""Processing and caching of web files.

Each file is processed at most once per cache key and cache epoch. The cache
key covers the file's normalized path, the pipeline processing it, and the
current cache-buster value.

Concurrent requests for the same uncached key share a single in-flight
operation. A request that's abandoned while waiting only stops its own wait.
The shared operation keeps running for any other requests depending on it.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from functools import partial
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence
from weakref import WeakKeyDictionary

from asgiref.sync import sync_to_async

from djbundles.errors import PreProcessError
from djbundles.hashing import get_web_file_hash

if TYPE_CHECKING:
    from djbundles.cachebusters import BaseCacheBuster
    from djbundles.filesystem import FileSystemHelper
    from djbundles.hashing import BaseHasher
    from djbundles.models import WebFile, WebFileType
    from djbundles.processors.pipeline import (PreProcessPipeline,
                                               PreProcessPipelineFactory)
    from djbundles.storage import BaseCacheStorage


logger = logging.getLogger(__name__)


class PreProcessManager:
    """Runs pipelines over web files and caches the results.

    A single manager should be shared by all requests in a process. See
    :py:class:`~djbundles.environment.BundlesEnvironment`.
    """

    ######################
    # Instance variables #
    ######################

    #: The helper used to locate and read source files.
    file_system: FileSystemHelper

    #: The hasher used for file hashes.
    hasher: BaseHasher

    #: The factory providing default pipelines.
    pipeline_factory: PreProcessPipelineFactory

    #: The storage holding processed content.
    storage: BaseCacheStorage

    #: In-flight operations, by event loop and cache key.
    _in_flight: WeakKeyDictionary[asyncio.AbstractEventLoop,
                                  Dict[str, asyncio.Future]]

    def __init__(
        self,
        *,
        storage: BaseCacheStorage,
        file_system: FileSystemHelper,
        hasher: BaseHasher,
        pipeline_factory: PreProcessPipelineFactory,
    ) -> None:
        """Initialize the manager.

        Args:
            storage (djbundles.storage.BaseCacheStorage):
                The storage holding processed content.

            file_system (djbundles.filesystem.FileSystemHelper):
                The helper used to locate and read source files.

            hasher (djbundles.hashing.BaseHasher):
                The hasher used for file hashes.

            pipeline_factory (djbundles.processors.pipeline.
                              PreProcessPipelineFactory):
                The factory providing default pipelines.
        """
        self.storage = storage
        self.file_system = file_system
        self.hasher = hasher
        self.pipeline_factory = pipeline_factory

        self._in_flight = WeakKeyDictionary()
        self._in_flight_lock = threading.Lock()

    def get_pipeline(
        self,
        web_file: WebFile,
    ) -> PreProcessPipeline:
        """Return the pipeline used to process a file.

        Args:
            web_file (djbundles.models.WebFile):
                The file.

        Returns:
            djbundles.processors.pipeline.PreProcessPipeline:
            The file's own pipeline, or the default for its type.
        """
        return self.pipeline_factory.get_for_file(web_file)

    def get_file_hash(
        self,
        web_file: WebFile,
    ) -> str:
        """Return the hash identifying a file's processed output.

        Args:
            web_file (djbundles.models.WebFile):
                The file.

        Returns:
            str:
            The file hash.
        """
        return get_web_file_hash(
            self.hasher,
            self.file_system.normalize_web_path(web_file.file_path),
            self.get_pipeline(web_file).pipeline_id)

    def get_cache_key(
        self,
        file_hash: str,
        file_type: WebFileType,
        cache_buster: BaseCacheBuster,
    ) -> str:
        """Return the cache key for a file hash.

        Args:
            file_hash (str):
                The file hash, as returned by :py:meth:`get_file_hash` or
                parsed from a composite URL.

            file_type (djbundles.models.WebFileType):
                The type of the file.

            cache_buster (djbundles.cachebusters.BaseCacheBuster):
                The cache-buster defining the current cache epoch.

        Returns:
            str:
            The cache key.

        Raises:
            ValueError:
                ``cache_buster`` was ``None``.
        """
        if cache_buster is None:
            raise ValueError('cache_buster must be provided.')

        return '%s/%s%s' % (cache_buster.get_value(), file_hash,
                            file_type.extension)

    async def process_and_cache_file(
        self,
        web_file: WebFile,
        *,
        cache_buster: BaseCacheBuster,
    ) -> str:
        """Process a file and cache the result, if not already cached.

        If the file is already cached and the source has not changed since,
        no pre-processors are run. If another request is already processing
        the same file, this waits for and shares that result.

        Args:
            web_file (djbundles.models.WebFile):
                The file to process.

            cache_buster (djbundles.cachebusters.BaseCacheBuster):
                The cache-buster defining the current cache epoch.

        Returns:
            str:
            The cache key of the processed content.

        Raises:
            ValueError:
                The file is externally hosted, or ``cache_buster`` was
                ``None``.

            djbundles.errors.PreProcessError:
                The file could not be read or processed.
        """
        if self.file_system.is_external_path(web_file.file_path):
            raise ValueError('External file "%s" cannot be processed.'
                             % web_file.file_path)

        key = self.get_cache_key(self.get_file_hash(web_file),
                                 web_file.file_type,
                                 cache_buster)
        in_flight = self._get_in_flight()
        future = in_flight.get(key)

        if future is None:
            future = asyncio.ensure_future(self._process(web_file, key))
            in_flight[key] = future
            future.add_done_callback(partial(self._on_done, in_flight, key))
        else:
            logger.debug('Waiting on in-flight processing of "%s" (%s)',
                         web_file.file_path, key)

        return await asyncio.shield(future)

    async def process_and_cache_files(
        self,
        web_files: Sequence[WebFile],
        *,
        cache_buster: BaseCacheBuster,
    ) -> List[str]:
        """Process and cache several files concurrently.

        A failure processing one file does not stop the others. Once all
        files have finished, the first failure is raised.

        Args:
            web_files (list of djbundles.models.WebFile):
                The files to process.

            cache_buster (djbundles.cachebusters.BaseCacheBuster):
                The cache-buster defining the current cache epoch.

        Returns:
            list of str:
            The cache keys of the processed content, in order.

        Raises:
            djbundles.errors.PreProcessError:
                One or more files could not be processed.
        """
        results = await asyncio.gather(
            *(
                self.process_and_cache_file(web_file,
                                            cache_buster=cache_buster)
                for web_file in web_files
            ),
            return_exceptions=True)

        for result in results:
            if isinstance(result, BaseException):
                raise result

        return results

    async def read_cached(
        self,
        key: str,
    ) -> Optional[str]:
        """Return processed content from the cache.

        Args:
            key (str):
                The cache key.

        Returns:
            str:
            The processed content, or ``None`` if nothing is cached for the
            key.
        """
        try:
            return await sync_to_async(self.storage.read,
                                       thread_sensitive=False)(key)
        except FileNotFoundError:
            return None

    def invalidate(
        self,
        web_file: WebFile,
        *,
        cache_buster: BaseCacheBuster,
    ) -> None:
        """Remove a file's processed content from the cache.

        Args:
            web_file (djbundles.models.WebFile):
                The file to invalidate.

            cache_buster (djbundles.cachebusters.BaseCacheBuster):
                The cache-buster defining the current cache epoch.
        """
        key = self.get_cache_key(self.get_file_hash(web_file),
                                 web_file.file_type,
                                 cache_buster)
        self.storage.delete(key)

        logger.debug('Invalidated cached content for "%s" (%s)',
                     web_file.file_path, key)

    def _is_cached(
        self,
        key: str,
        web_path: str,
    ) -> bool:
        """Return whether valid processed content is cached for a file.

        Content is valid if the source has not been modified since it was
        cached.

        Args:
            key (str):
                The cache key.

            web_path (str):
                The normalized web path of the source file.

        Returns:
            bool:
            ``True`` if valid content is cached.
        """
        cached_mtime = self.storage.get_modified_time(key)

        if cached_mtime is None:
            return False

        source_mtime = self.file_system.get_modified_time(web_path)

        return source_mtime is None or source_mtime <= cached_mtime

    async def _process(
        self,
        web_file: WebFile,
        key: str,
    ) -> str:
        """Process and cache a file, unless valid content is cached.

        Args:
            web_file (djbundles.models.WebFile):
                The file to process.

            key (str):
                The cache key.

        Returns:
            str:
            The cache key.

        Raises:
            djbundles.errors.PreProcessError:
                The file could not be read or processed.
        """
        web_path = self.file_system.normalize_web_path(web_file.file_path)

        if await sync_to_async(self._is_cached,
                               thread_sensitive=False)(key, web_path):
            logger.debug('Using cached content for "%s" (%s)',
                         web_path, key)

            return key

        logger.debug('Processing "%s" (%s)', web_path, key)

        try:
            content = await sync_to_async(self.file_system.read_contents,
                                          thread_sensitive=False)(web_path)
        except OSError as e:
            logger.error('Unable to read "%s" for processing: %s',
                         web_path, e)

            raise PreProcessError(web_path, reason=str(e)) from e

        content = await self.get_pipeline(web_file).process_file(
            web_file=web_file,
            web_path=web_path,
            content=content)

        await sync_to_async(self.storage.write,
                            thread_sensitive=False)(key, content)

        return key

    def _get_in_flight(self) -> Dict[str, asyncio.Future]:
        """Return the in-flight operations for the running event loop.

        Returns:
            dict:
            A mapping of cache keys to in-flight operations.
        """
        loop = asyncio.get_running_loop()

        with self._in_flight_lock:
            try:
                return self._in_flight[loop]
            except KeyError:
                in_flight: Dict[str, asyncio.Future] = {}
                self._in_flight[loop] = in_flight

                return in_flight

    def _on_done(
        self,
        in_flight: Dict[str, asyncio.Future],
        key: str,
        future: asyncio.Future,
    ) -> None:
        """Clear a finished in-flight operation.

        Args:
            in_flight (dict):
                The in-flight operations for the event loop.

            key (str):
                The cache key of the operation.

            future (asyncio.Future):
                The finished operation.
        """
        if in_flight.get(key) is future:
            del in_flight[key]

        # Failures are raised to every waiter. This only marks the result as
        # retrieved when every waiter has gone away.
        if not future.cancelled():
            future.exception()
