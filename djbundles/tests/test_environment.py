"""Unit tests for djbundles.environment."""

from __future__ import annotations

from django.core.exceptions import ImproperlyConfigured

from djbundles.environment import (BundlesEnvironment,
                                   get_environment,
                                   reset_environment)
from djbundles.hashing import SHA256Hasher
from djbundles.helpers import BundleRenderer
from djbundles.models import WebFile, WebFileType
from djbundles.settings import build_bundles_settings
from djbundles.storage import FileSystemCacheStorage
from djbundles.testing.testcases import TestCase


class BundlesEnvironmentTests(TestCase):
    """Unit tests for djbundles.environment.BundlesEnvironment."""

    def test_init(self) -> None:
        """Testing BundlesEnvironment.__init__ wires components from
        configuration
        """
        env = self.create_environment(
            hasher='djbundles.hashing.SHA256Hasher',
            bundles={
                'site': {
                    'file_type': 'js',
                    'source_filenames': ['js/a.js'],
                },
            })

        self.assertIsInstance(env.hasher, SHA256Hasher)
        self.assertIsInstance(env.storage, FileSystemCacheStorage)
        self.assertEqual(env.storage.location, self.cache_dir)
        self.assertEqual(env.cache_buster.get_value(), '1')
        self.assertIs(env.url_manager.hasher, env.hasher)
        self.assertIs(env.preprocess_manager.storage, env.storage)
        self.assertTrue(env.bundle_manager.exists('site'))

    def test_init_with_bad_class_path(self) -> None:
        """Testing BundlesEnvironment.__init__ with a class path that can't
        be imported
        """
        config = self.build_config(hasher='djbundles.hashing.MissingHasher')
        message = 'Unable to import DJBUNDLES["HASHER"] class'

        with self.assertRaisesMessage(ImproperlyConfigured, message):
            BundlesEnvironment(config)

    def test_resolve_files(self) -> None:
        """Testing BundlesEnvironment.resolve_files"""
        self.write_static_file('js/lib.js', '')
        self.write_static_file('js/lib.min.js', '')

        env = self.create_environment()
        files = env.resolve_files([
            WebFile.script('js/app.js', dependent_files=['js/lib.js']),
        ])

        self.assertEqual([web_file.file_path for web_file in files],
                         ['js/lib.min.js', 'js/app.js'])
        self.assertTrue(all(web_file.pipeline is not None
                            for web_file in files))

    def test_resolve_files_without_conventions(self) -> None:
        """Testing BundlesEnvironment.resolve_files with no conventions"""
        self.write_static_file('js/lib.min.js', '')

        env = self.create_environment(conventions=[])
        files = env.resolve_files([WebFile.script('js/lib.js')])

        self.assertEqual(files[0].file_path, 'js/lib.js')


class GetEnvironmentTests(TestCase):
    """Unit tests for djbundles.environment.get_environment."""

    def test_get_environment(self) -> None:
        """Testing get_environment returns a shared environment"""
        with self.settings(DJBUNDLES=build_bundles_settings(
                cache_dir=self.cache_dir,
                version='abc')):
            env = get_environment()

            self.assertIs(get_environment(), env)
            self.assertEqual(env.cache_buster.get_value(), 'abc')
            self.assertIs(BundleRenderer().environment, env)

    def test_get_environment_after_settings_change(self) -> None:
        """Testing get_environment rebuilds after settings change"""
        with self.settings(DJBUNDLES=build_bundles_settings(
                cache_dir=self.cache_dir,
                version='abc')):
            env1 = get_environment()
            env1.bundle_manager.create('site', WebFileType.SCRIPT,
                                       ['js/a.js'])

        with self.settings(DJBUNDLES=build_bundles_settings(
                cache_dir=self.cache_dir,
                version='def')):
            env2 = get_environment()

        self.assertIsNot(env1, env2)
        self.assertEqual(env2.cache_buster.get_value(), 'def')
        self.assertFalse(env2.bundle_manager.exists('site'))

    def test_reset_environment(self) -> None:
        """Testing reset_environment"""
        with self.settings(DJBUNDLES=build_bundles_settings(
                cache_dir=self.cache_dir,
                version='abc')):
            env = get_environment()
            reset_environment()

            self.assertIsNot(get_environment(), env)
