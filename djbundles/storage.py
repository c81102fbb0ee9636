"""Storage for processed file content.

Keys are ``/``-separated strings, such as ``<cache-buster>/<hash>.js``.
Writes are atomic with respect to concurrent readers: content is written to
a temporary file in the destination directory and then moved into place, so
a reader never sees a partially written file.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from typing import Optional

from djbundles.filesystem import safe_join


logger = logging.getLogger(__name__)


class BaseCacheStorage:
    """Base class for storage of processed file content."""

    def exists(
        self,
        key: str,
    ) -> bool:
        """Return whether content is stored for a key.

        Args:
            key (str):
                The cache key.

        Returns:
            bool:
            ``True`` if content is stored.
        """
        raise NotImplementedError

    def read(
        self,
        key: str,
    ) -> str:
        """Return the content stored for a key.

        Args:
            key (str):
                The cache key.

        Returns:
            str:
            The stored content.

        Raises:
            FileNotFoundError:
                No content is stored for the key.
        """
        raise NotImplementedError

    def write(
        self,
        key: str,
        content: str,
    ) -> None:
        """Atomically store content for a key.

        Args:
            key (str):
                The cache key.

            content (str):
                The content to store.
        """
        raise NotImplementedError

    def delete(
        self,
        key: str,
    ) -> None:
        """Delete the content stored for a key.

        This does nothing if no content is stored.

        Args:
            key (str):
                The cache key.
        """
        raise NotImplementedError

    def get_modified_time(
        self,
        key: str,
    ) -> Optional[float]:
        """Return the time content was stored for a key.

        Args:
            key (str):
                The cache key.

        Returns:
            float:
            The timestamp, or ``None`` if no content is stored.
        """
        raise NotImplementedError


class FileSystemCacheStorage(BaseCacheStorage):
    """Stores processed file content in a directory on disk."""

    ######################
    # Instance variables #
    ######################

    #: The directory storing content.
    location: str

    def __init__(
        self,
        location: str,
    ) -> None:
        """Initialize the storage.

        Args:
            location (str):
                The directory storing content. It will be created when
                content is first written.
        """
        self.location = location

    def path(
        self,
        key: str,
    ) -> str:
        """Return the path on disk for a key.

        Args:
            key (str):
                The cache key.

        Returns:
            str:
            The path on disk.

        Raises:
            django.core.exceptions.SuspiciousFileOperation:
                The key would resolve outside of the storage directory.
        """
        return safe_join(self.location, *key.split('/'))

    def exists(
        self,
        key: str,
    ) -> bool:
        """Return whether content is stored for a key.

        Args:
            key (str):
                The cache key.

        Returns:
            bool:
            ``True`` if content is stored.
        """
        return os.path.isfile(self.path(key))

    def read(
        self,
        key: str,
    ) -> str:
        """Return the content stored for a key.

        Args:
            key (str):
                The cache key.

        Returns:
            str:
            The stored content.

        Raises:
            FileNotFoundError:
                No content is stored for the key.
        """
        with open(self.path(key), 'r', encoding='utf-8') as fp:
            return fp.read()

    def write(
        self,
        key: str,
        content: str,
    ) -> None:
        """Atomically store content for a key.

        Args:
            key (str):
                The cache key.

            content (str):
                The content to store.
        """
        dest_path = self.path(key)
        dest_dir = os.path.dirname(dest_path)

        os.makedirs(dest_dir, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(dir=dest_dir, prefix='.tmp-')

        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fp:
                fp.write(content)

            os.replace(temp_path, dest_path)
        except BaseException:
            try:
                os.unlink(temp_path)
            except OSError:
                pass

            raise

        logger.debug('Stored processed content for "%s" at "%s"',
                     key, dest_path)

    def delete(
        self,
        key: str,
    ) -> None:
        """Delete the content stored for a key.

        This does nothing if no content is stored.

        Args:
            key (str):
                The cache key.
        """
        try:
            os.unlink(self.path(key))
        except FileNotFoundError:
            pass

    def get_modified_time(
        self,
        key: str,
    ) -> Optional[float]:
        """Return the time content was stored for a key.

        Args:
            key (str):
                The cache key.

        Returns:
            float:
            The timestamp, or ``None`` if no content is stored.
        """
        try:
            return os.path.getmtime(self.path(key))
        except FileNotFoundError:
            return None

    def clear(self) -> None:
        """Delete all stored content."""
        shutil.rmtree(self.location, ignore_errors=True)
