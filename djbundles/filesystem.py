"""Filesystem access for web files."""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Optional, cast

from django.apps import apps
from django.core.exceptions import SuspiciousFileOperation
from typing_extensions import Protocol


logger = logging.getLogger(__name__)


class _PathModule(Protocol):
    """Protocol representing a path module.

    This helps with typing within these utility functions. It should not
    be used outside of this module, and is subject to change.
    """

    abspath: Callable[[str], str]
    dirname: Callable[[str], str]
    join: Callable[..., str]
    normcase: Callable[[str], str]
    relpath: Callable[[str, str], str]
    sep: str


def safe_join(
    base: str,
    *paths: str,
    path_mod: Any = os.path,
    rel_to: Optional[str] = None,
) -> str:
    """Safely join filesystem paths, ensuring the result is within a base path.

    This will join paths and and ensure the resulting path doesn't escape the
    base path, making it safer when including non-static path components.

    The result is always an absolute path, unless ``rel_to`` is provided.

    Args:
        base (str):
            The base path that the remaining paths will be joined to.

        paths (tuple of str):
            The resulting paths to join.

        path_mod (module, optional):
            An explicit path module to use.

            This is useful when building non-native filesystem paths.

        rel_to (str, optional):
            A path that the result will be made relative to.

    Returns:
        str:
        The absolute joined path.

    Raises:
        django.core.exceptions.SuspiciousFileOperation:
            The resulting path was outside of the base path.
    """
    _path_mod = cast(_PathModule, path_mod)

    result_path = _path_mod.abspath(_path_mod.join(base, *paths))
    abs_base_path = _path_mod.abspath(base)

    norm_result_path = _path_mod.normcase(result_path)
    norm_base_path = _path_mod.normcase(abs_base_path)

    # The resulting path must be the base path, be within the base path, or
    # the base path must be the root of the filesystem.
    if (norm_result_path != norm_base_path and
        not norm_result_path.startswith(norm_base_path + _path_mod.sep) and
        _path_mod.dirname(norm_base_path) != norm_base_path):
        raise SuspiciousFileOperation(
            'The joined path (%r) is located outside of the base path (%r).'
            % (result_path, abs_base_path))

    if rel_to:
        result_path = _path_mod.relpath(result_path, rel_to)

    return result_path


def is_external_path(
    path: str,
) -> bool:
    """Return whether a path refers to an externally hosted file.

    Args:
        path (str):
            The path to check.

    Returns:
        bool:
        ``True`` if the path has a scheme or is protocol-relative.
    """
    return '://' in path or path.startswith('//')


class FileSystemHelper:
    """Maps web paths to files on disk.

    Web paths may be:

    * External URLs (``https://...`` or ``//...``), which are never read.
    * Application-relative (``~/js/app.js``), resolved against the URL root.
    * Absolute (``/static/js/app.js``).
    * Relative (``js/app.js``), resolved against the static media URL.

    Files are looked up in the static media root, and then through Django's
    static file finders if :py:mod:`django.contrib.staticfiles` is
    installed.
    """

    ######################
    # Instance variables #
    ######################

    #: The directory containing static media.
    static_root: str

    #: The URL prefix for static media.
    static_url: str

    #: The root URL for application-relative paths.
    url_root: str

    def __init__(
        self,
        *,
        static_root: str,
        static_url: str = '/static/',
        url_root: str = '/',
    ) -> None:
        """Initialize the helper.

        Args:
            static_root (str):
                The directory containing static media.

            static_url (str, optional):
                The URL prefix for static media.

            url_root (str, optional):
                The root URL for application-relative paths.
        """
        self.static_root = static_root
        self.static_url = static_url
        self.url_root = url_root

    def is_external_path(
        self,
        path: str,
    ) -> bool:
        """Return whether a path refers to an externally hosted file.

        Args:
            path (str):
                The path to check.

        Returns:
            bool:
            ``True`` if the path is external.
        """
        return is_external_path(path)

    def normalize_web_path(
        self,
        path: str,
    ) -> str:
        """Return the absolute web path for a file.

        Args:
            path (str):
                The declared file path.

        Returns:
            str:
            The absolute web path, or the unchanged URL for external files.
        """
        if self.is_external_path(path):
            return path
        elif path.startswith('~/'):
            return '%s%s' % (self.url_root, path[2:])
        elif path.startswith('/'):
            return path
        else:
            return '%s%s' % (self.static_url, path)

    def get_file_path(
        self,
        path: str,
    ) -> Optional[str]:
        """Return the location on disk for a web path.

        Args:
            path (str):
                The declared or normalized web path.

        Returns:
            str:
            The path on disk, or ``None`` if the file could not be found or
            is external.
        """
        if self.is_external_path(path):
            return None

        web_path = self.normalize_web_path(path).split('?', 1)[0]

        if web_path.startswith(self.static_url):
            rel_path = web_path[len(self.static_url):]
        elif web_path.startswith(self.url_root):
            rel_path = web_path[len(self.url_root):]
        else:
            rel_path = web_path.lstrip('/')

        if self.static_root:
            file_path = safe_join(self.static_root, rel_path)

            if os.path.isfile(file_path):
                return file_path

        if apps.is_installed('django.contrib.staticfiles'):
            from django.contrib.staticfiles import finders

            found = finders.find(rel_path)

            if found:
                return found

        return None

    def exists(
        self,
        path: str,
    ) -> bool:
        """Return whether a web path exists on disk.

        Args:
            path (str):
                The web path.

        Returns:
            bool:
            ``True`` if the file exists.
        """
        return self.get_file_path(path) is not None

    def get_modified_time(
        self,
        path: str,
    ) -> Optional[float]:
        """Return the modification time of a web path's file.

        Args:
            path (str):
                The web path.

        Returns:
            float:
            The modification timestamp, or ``None`` if the file does not
            exist.
        """
        file_path = self.get_file_path(path)

        if file_path is None:
            return None

        return os.path.getmtime(file_path)

    def read_contents(
        self,
        path: str,
    ) -> str:
        """Return the text content of a web path's file.

        Any UTF-8 byte order mark is stripped.

        Args:
            path (str):
                The web path.

        Returns:
            str:
            The file content.

        Raises:
            FileNotFoundError:
                The file could not be found.
        """
        file_path = self.get_file_path(path)

        if file_path is None:
            raise FileNotFoundError('Unable to find web file "%s".' % path)

        with open(file_path, 'r', encoding='utf-8-sig') as fp:
            return fp.read()
