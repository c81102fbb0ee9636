"""Unit tests for djbundles.bundles."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from django.core.exceptions import ImproperlyConfigured

from djbundles.bundles import BundleCreateStatus, BundleManager
from djbundles.errors import BundleNotFoundError, InvalidPipelineError
from djbundles.models import (BundleEnvironmentOptions,
                              BundleOptions,
                              CacheControlOptions,
                              WebFile,
                              WebFileType)
from djbundles.signals import bundle_created
from djbundles.testing.testcases import TestCase


class BundleManagerTests(TestCase):
    """Unit tests for djbundles.bundles.BundleManager."""

    def setUp(self) -> None:
        super().setUp()

        self.env = self.create_environment()
        self.bundle_manager = BundleManager(
            pipeline_factory=self.env.pipeline_factory)

    def test_create(self) -> None:
        """Testing BundleManager.create"""
        handle = self.bundle_manager.create(
            'site',
            WebFileType.SCRIPT,
            ['js/a.js', WebFile.script('js/b.js', order=1)])

        self.assertTrue(handle.created)
        self.assertIs(handle.status, BundleCreateStatus.INSERTED)
        self.assertEqual(handle.name, 'site')

        bundle = handle.bundle
        self.assertIsNotNone(bundle)
        self.assertIs(bundle.file_type, WebFileType.SCRIPT)
        self.assertEqual(bundle.files, (
            WebFile.script('js/a.js'),
            WebFile.script('js/b.js', order=1),
        ))
        self.assertEqual(bundle.options, BundleOptions())

        self.assertTrue(self.bundle_manager.exists('site'))
        self.assertIs(self.bundle_manager.get('site'), bundle)
        self.assertIn('site', self.bundle_manager)
        self.assertEqual(len(self.bundle_manager), 1)
        self.assertEqual(list(self.bundle_manager), [bundle])

    def test_create_with_existing(self) -> None:
        """Testing BundleManager.create with an existing bundle name"""
        handle1 = self.bundle_manager.create('site', WebFileType.SCRIPT,
                                             ['js/a.js'])
        handle2 = self.bundle_manager.create('site', WebFileType.SCRIPT,
                                             ['js/other.js'])

        self.assertTrue(handle1.created)
        self.assertFalse(handle2.created)
        self.assertIs(handle2.status, BundleCreateStatus.ALREADY_EXISTS)
        self.assertIsNone(handle2.bundle)
        self.assertEqual(self.bundle_manager.get_files('site'),
                         (WebFile.script('js/a.js'),))

    def test_create_with_existing_other_type(self) -> None:
        """Testing BundleManager.create with an existing bundle name of
        another type
        """
        self.bundle_manager.create('site', WebFileType.SCRIPT, ['js/a.js'])
        handle = self.bundle_manager.create('site', WebFileType.STYLE,
                                            ['css/a.css'])

        self.assertFalse(handle.created)
        self.assertIs(self.bundle_manager.get('site').file_type,
                      WebFileType.SCRIPT)

    def test_create_sends_signal(self) -> None:
        """Testing BundleManager.create sends bundle_created"""
        created = []

        def _on_bundle_created(sender, bundle, **kwargs):
            created.append(bundle)

        bundle_created.connect(_on_bundle_created)
        self.addCleanup(bundle_created.disconnect, _on_bundle_created)

        handle = self.bundle_manager.create('site', WebFileType.SCRIPT,
                                            ['js/a.js'])
        self.bundle_manager.create('site', WebFileType.SCRIPT, ['js/b.js'])

        self.assertEqual(created, [handle.bundle])

    def test_create_without_name(self) -> None:
        """Testing BundleManager.create with an empty name"""
        with self.assertRaises(ValueError):
            self.bundle_manager.create('', WebFileType.SCRIPT, ['js/a.js'])

    def test_create_with_mismatched_type(self) -> None:
        """Testing BundleManager.create with a file of the wrong type"""
        message = 'Cannot add css file "css/a.css" to js bundle "site".'

        with self.assertRaisesMessage(ValueError, message):
            self.bundle_manager.create('site', WebFileType.SCRIPT,
                                       [WebFile.style('css/a.css')])

        self.assertFalse(self.bundle_manager.exists('site'))

    def test_create_concurrent(self) -> None:
        """Testing BundleManager.create with concurrent requests for the same
        name
        """
        barrier = threading.Barrier(8)

        def _create(i):
            barrier.wait()

            return self.bundle_manager.create('site', WebFileType.SCRIPT,
                                              ['js/file%d.js' % i])

        with ThreadPoolExecutor(max_workers=8) as executor:
            handles = list(executor.map(_create, range(8)))

        inserted = [handle for handle in handles if handle.created]

        self.assertEqual(len(inserted), 1)
        self.assertIs(self.bundle_manager.get('site'), inserted[0].bundle)

    def test_get_with_unknown(self) -> None:
        """Testing BundleManager.get with an unknown bundle"""
        message = 'No bundle has been registered with the name "missing".'

        with self.assertRaisesMessage(BundleNotFoundError, message) as ctx:
            self.bundle_manager.get('missing')

        self.assertEqual(ctx.exception.bundle_name, 'missing')
        self.assertFalse(self.bundle_manager.exists('missing'))
        self.assertIsNone(self.bundle_manager.get_or_none('missing'))

    def test_load_static_bundles(self) -> None:
        """Testing BundleManager.load_static_bundles"""
        handles = self.bundle_manager.load_static_bundles({
            'site-js': {
                'file_type': 'js',
                'source_filenames': [
                    'js/a.js',
                    {
                        'path': 'js/b.js',
                        'order': 2,
                        'dependencies': ['js/lib.js'],
                    },
                ],
            },
            'site-css': {
                'file_type': 'CSS',
                'source_filenames': ['css/a.css'],
                'cache_control': {
                    'max_age': 3600,
                },
                'debug_cache_control': {
                    'enable_etag': True,
                },
                'pipeline': ['css-url'],
            },
        })

        self.assertEqual([handle.name for handle in handles],
                         ['site-js', 'site-css'])
        self.assertTrue(all(handle.created for handle in handles))

        js_bundle = self.bundle_manager.get('site-js')
        self.assertEqual(js_bundle.files, (
            WebFile.script('js/a.js'),
            WebFile.script('js/b.js', order=2,
                           dependent_files=('js/lib.js',)),
        ))
        self.assertIsNone(js_bundle.pipeline)

        css_bundle = self.bundle_manager.get('site-css')
        self.assertIs(css_bundle.file_type, WebFileType.STYLE)
        self.assertEqual(css_bundle.pipeline.pipeline_id, 'css-url')
        self.assertEqual(
            css_bundle.options,
            BundleOptions(
                production=BundleEnvironmentOptions(
                    cache_control=CacheControlOptions(enable_etag=True,
                                                      max_age=3600)),
                debug=BundleEnvironmentOptions(
                    cache_control=CacheControlOptions(enable_etag=True,
                                                      max_age=0))))

    def test_load_static_bundles_with_invalid_type(self) -> None:
        """Testing BundleManager.load_static_bundles with an invalid
        file_type
        """
        with self.assertRaises(ImproperlyConfigured):
            self.bundle_manager.load_static_bundles({
                'site': {
                    'file_type': 'html',
                    'source_filenames': ['a.html'],
                },
            })

    def test_load_static_bundles_with_invalid_pipeline(self) -> None:
        """Testing BundleManager.load_static_bundles with an unknown
        pre-processor
        """
        with self.assertRaises(InvalidPipelineError):
            self.bundle_manager.load_static_bundles({
                'site': {
                    'file_type': 'js',
                    'source_filenames': ['js/a.js'],
                    'pipeline': ['bogus'],
                },
            })

    def test_load_static_bundles_without_pipeline_factory(self) -> None:
        """Testing BundleManager.load_static_bundles with a pipeline and no
        pipeline factory
        """
        bundle_manager = BundleManager()

        with self.assertRaises(ImproperlyConfigured):
            bundle_manager.load_static_bundles({
                'site': {
                    'file_type': 'js',
                    'source_filenames': ['js/a.js'],
                    'pipeline': ['js-min'],
                },
            })


class BundleOptionsTests(TestCase):
    """Unit tests for djbundles.models.BundleOptions."""

    def test_defaults(self) -> None:
        """Testing BundleOptions defaults"""
        options = BundleOptions()

        self.assertEqual(
            options.get_environment_options(False).cache_control,
            CacheControlOptions(enable_etag=True, max_age=864000))
        self.assertEqual(
            options.get_environment_options(True).cache_control,
            CacheControlOptions(enable_etag=False, max_age=0))
