"""Naming conventions applied to file paths before processing."""

from __future__ import annotations

import logging
import posixpath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from djbundles.filesystem import FileSystemHelper


logger = logging.getLogger(__name__)


class BaseFileProcessingConvention:
    """Base class for a file processing convention.

    A convention may rewrite the path of a file before it's batched and
    processed. Conventions run in the order they're configured, each seeing
    the previous convention's output.

    Subclasses must implement :py:meth:`process_path`.
    """

    def process_path(
        self,
        file_path: str,
        file_system: FileSystemHelper,
    ) -> str:
        """Return the path to use for a file.

        Args:
            file_path (str):
                The declared path of the file.

            file_system (djbundles.filesystem.FileSystemHelper):
                The helper used to check for files on disk.

        Returns:
            str:
            The path to use. This may be ``file_path`` unchanged.
        """
        raise NotImplementedError


class MinifiedFilePathConvention(BaseFileProcessingConvention):
    """Prefers a pre-minified sibling of a file, if one exists.

    For example, :file:`js/jquery.js` is replaced with
    :file:`js/jquery.min.js` when that file exists on disk. External files
    and files that are already minified are left alone.
    """

    def process_path(
        self,
        file_path: str,
        file_system: FileSystemHelper,
    ) -> str:
        """Return the minified sibling path, if it exists.

        Args:
            file_path (str):
                The declared path of the file.

            file_system (djbundles.filesystem.FileSystemHelper):
                The helper used to check for files on disk.

        Returns:
            str:
            The minified sibling path, or ``file_path`` if there isn't one.
        """
        if file_system.is_external_path(file_path) or '?' in file_path:
            return file_path

        base, ext = posixpath.splitext(file_path)

        if not ext or base.endswith('.min'):
            return file_path

        min_path = '%s.min%s' % (base, ext)

        if file_system.exists(min_path):
            logger.debug('Using minified file "%s" in place of "%s"',
                         min_path, file_path)

            return min_path

        return file_path
