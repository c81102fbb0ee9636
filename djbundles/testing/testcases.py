"""Base class for test cases using Djbundles."""

from __future__ import annotations

import os
import re
import shutil
import tempfile
from typing import Any, Mapping, Optional

from django.test import testcases

from djbundles.environment import BundlesEnvironment, reset_environment
from djbundles.settings import (BundlesConfig,
                                build_bundles_settings,
                                get_bundles_config)


class TestCase(testcases.SimpleTestCase):
    """Base class for test cases.

    Each test gets its own temporary static media and cache directories,
    available as :py:attr:`static_root` and :py:attr:`cache_dir`. Both are
    removed after the test.
    """

    ws_re = re.compile(r'\s+')

    ######################
    # Instance variables #
    ######################

    #: The temporary directory for processed files.
    cache_dir: str

    #: The temporary directory for static media.
    static_root: str

    def setUp(self) -> None:
        super().setUp()

        self.static_root = self.make_temp_dir()
        self.cache_dir = self.make_temp_dir()

        self.addCleanup(reset_environment)

    def shortDescription(self) -> Optional[str]:
        """Returns the description of the current test.

        This changes the default behavior to replace all newlines with spaces,
        allowing a test description to span lines. It should still be kept
        short, though.
        """
        doc = self._testMethodDoc

        if doc is not None:
            doc = doc.split('\n\n', 1)[0]
            doc = self.ws_re.sub(' ', doc).strip()

        return doc

    def make_temp_dir(self) -> str:
        """Create a temporary directory, removed after the test.

        Returns:
            str:
            The path to the directory.
        """
        path = tempfile.mkdtemp(prefix='djbundles-tests.')
        self.addCleanup(shutil.rmtree, path, ignore_errors=True)

        return path

    def write_static_file(
        self,
        path: str,
        content: str,
        *,
        mtime: Optional[float] = None,
    ) -> str:
        """Write a file to the temporary static media directory.

        Args:
            path (str):
                The path of the file, relative to :py:attr:`static_root`.

            content (str):
                The content to write.

            mtime (float, optional):
                An explicit modification time to set on the file.

        Returns:
            str:
            The full path to the file.
        """
        full_path = os.path.join(self.static_root, *path.split('/'))
        os.makedirs(os.path.dirname(full_path), exist_ok=True)

        with open(full_path, 'w', encoding='utf-8') as fp:
            fp.write(content)

        if mtime is not None:
            os.utime(full_path, (mtime, mtime))

        return full_path

    def build_config(
        self,
        *,
        extra_config: Optional[Mapping[str, Any]] = None,
        **kwargs,
    ) -> BundlesConfig:
        """Return a configuration using the temporary directories.

        Args:
            extra_config (dict, optional):
                Additional ``DJBUNDLES`` keys to set.

            **kwargs (dict):
                Keyword arguments for
                :py:func:`~djbundles.settings.build_bundles_settings`.

        Returns:
            djbundles.settings.BundlesConfig:
            The configuration.
        """
        kwargs.setdefault('cache_dir', self.cache_dir)
        kwargs.setdefault('version', '1')

        djbundles_settings = build_bundles_settings(
            extra_config=dict({
                'STATIC_ROOT': self.static_root,
                'STATIC_URL': '/static/',
                'DEBUG': False,
            }, **(extra_config or {})),
            **kwargs)

        with self.settings(DJBUNDLES=djbundles_settings):
            return get_bundles_config()

    def create_environment(
        self,
        **kwargs,
    ) -> BundlesEnvironment:
        """Return an environment using the temporary directories.

        Args:
            **kwargs (dict):
                Keyword arguments for :py:meth:`build_config`.

        Returns:
            djbundles.environment.BundlesEnvironment:
            The environment.
        """
        return BundlesEnvironment(self.build_config(**kwargs))
