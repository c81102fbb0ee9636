"""Unit tests for djbundles.url_manager."""

from __future__ import annotations

from djbundles.cachebusters import BaseCacheBuster, ConfigCacheBuster
from djbundles.errors import UrlLengthExceededError
from djbundles.hashing import Crc32Hasher
from djbundles.models import HashedWebFile, WebFile, WebFileType
from djbundles.testing.testcases import TestCase
from djbundles.url_manager import UrlManager, trim_extension


class FixedCacheBuster(BaseCacheBuster):
    def __init__(self, config, value: str) -> None:
        super().__init__(config)

        self._value = value

    def get_value(self) -> str:
        return self._value


class UrlManagerTests(TestCase):
    """Unit tests for djbundles.url_manager.UrlManager."""

    def setUp(self) -> None:
        super().setUp()

        self.hasher = Crc32Hasher()

    def _create_url_manager(self, **kwargs) -> UrlManager:
        config = self.build_config(**kwargs)
        self.cache_buster = ConfigCacheBuster(config)

        return UrlManager(config=config, hasher=self.hasher)

    def _make_hashed(self, *hashes: str) -> list[HashedWebFile]:
        return [
            HashedWebFile(web_file=WebFile.script('js/file%d.js' % i),
                          hash=file_hash)
            for i, file_hash in enumerate(hashes)
        ]

    def test_build_bundle_url(self) -> None:
        """Testing UrlManager.build_bundle_url"""
        url_manager = self._create_url_manager()

        self.assertEqual(
            url_manager.build_bundle_url('site', '.js', False,
                                         self.cache_buster),
            '/sb/site.js.v1')

    def test_build_bundle_url_with_debug(self) -> None:
        """Testing UrlManager.build_bundle_url with debug=True"""
        url_manager = self._create_url_manager()

        self.assertEqual(
            url_manager.build_bundle_url('site', '.css', True,
                                         self.cache_buster),
            '/sb/site.css.d1')

    def test_build_bundle_url_with_custom_paths(self) -> None:
        """Testing UrlManager.build_bundle_url with custom URL root and
        bundle path
        """
        url_manager = self._create_url_manager(url_root='/app',
                                               bundle_file_path='/bundles/')

        self.assertEqual(
            url_manager.build_bundle_url('site', '.js', False,
                                         self.cache_buster),
            '/app/bundles/site.js.v1')

    def test_build_bundle_url_escapes_name(self) -> None:
        """Testing UrlManager.build_bundle_url escapes the bundle name"""
        url_manager = self._create_url_manager()

        self.assertEqual(
            url_manager.build_bundle_url('my bundle', '.js', False,
                                         self.cache_buster),
            '/sb/my%20bundle.js.v1')

    def test_build_bundle_url_without_cache_buster(self) -> None:
        """Testing UrlManager.build_bundle_url without a cache-buster"""
        url_manager = self._create_url_manager()

        with self.assertRaises(ValueError):
            url_manager.build_bundle_url('site', '.js', False, None)

    def test_build_bundle_url_without_name(self) -> None:
        """Testing UrlManager.build_bundle_url with an empty bundle name"""
        url_manager = self._create_url_manager()

        with self.assertRaises(ValueError):
            url_manager.build_bundle_url('', '.js', False, self.cache_buster)

    def test_build_bundle_url_escapes_slash(self) -> None:
        """Testing UrlManager.build_bundle_url escapes slashes in the bundle
        name
        """
        url_manager = self._create_url_manager()

        url = url_manager.build_bundle_url('admin/site', '.js', False,
                                           self.cache_buster)

        self.assertEqual(url, '/sb/admin%2Fsite.js.v1')
        self.assertEqual(list(url_manager.parse_url(url).names),
                         ['admin/site'])

    def test_build_bundle_url_with_dotted_cache_buster(self) -> None:
        """Testing UrlManager.build_bundle_url with a cache-buster value
        containing a period
        """
        url_manager = self._create_url_manager()
        cache_buster = FixedCacheBuster(url_manager.config, '1.2.3')

        message = 'The cache-buster value "1.2.3" must not contain'

        with self.assertRaisesMessage(ValueError, message):
            url_manager.build_bundle_url('site', '.js', False, cache_buster)

    def test_build_bundle_url_with_slashed_cache_buster(self) -> None:
        """Testing UrlManager.build_bundle_url with a cache-buster value
        containing a slash
        """
        url_manager = self._create_url_manager()
        cache_buster = FixedCacheBuster(url_manager.config, 'a/b')

        with self.assertRaises(ValueError):
            url_manager.build_bundle_url('site', '.js', False, cache_buster)

    def test_build_composite_urls_with_no_files(self) -> None:
        """Testing UrlManager.build_composite_urls with no files"""
        url_manager = self._create_url_manager()

        self.assertEqual(
            url_manager.build_composite_urls([], '.js', self.cache_buster),
            [])

    def test_build_composite_urls_with_one_url(self) -> None:
        """Testing UrlManager.build_composite_urls with files fitting in one
        URL
        """
        url_manager = self._create_url_manager()

        urls = url_manager.build_composite_urls(
            self._make_hashed('aaaaaaaa', 'bbbbbbbb'),
            '.js',
            self.cache_buster)

        self.assertEqual(len(urls), 1)
        self.assertEqual(urls[0].url, '/sc/aaaaaaaa.bbbbbbbb.js.v1')
        self.assertEqual(urls[0].key, self.hasher.hash('aaaaaaaa.bbbbbbbb'))

    def test_build_composite_urls_splits(self) -> None:
        """Testing UrlManager.build_composite_urls splits files across URLs
        at the maximum length
        """
        # Each URL has 17 characters of overhead ("/", "sc", ".js", "1" and
        # 10 of slack), and each name takes 9 characters.
        url_manager = self._create_url_manager(max_url_length=40)

        urls = url_manager.build_composite_urls(
            self._make_hashed('aaaaaaaa', 'bbbbbbbb', 'cccccccc',
                              'dddddddd', 'eeeeeeee'),
            '.js',
            self.cache_buster)

        self.assertEqual(
            [url.url for url in urls],
            [
                '/sc/aaaaaaaa.bbbbbbbb.js.v1',
                '/sc/cccccccc.dddddddd.js.v1',
                '/sc/eeeeeeee.js.v1',
            ])

        for url in urls:
            self.assertLess(len(url.url), 40)

    def test_build_composite_urls_preserves_order(self) -> None:
        """Testing UrlManager.build_composite_urls keeps every file exactly
        once, in order, across split URLs
        """
        url_manager = self._create_url_manager(max_url_length=60)
        hashes = ['%08x' % i for i in range(25)]

        urls = url_manager.build_composite_urls(self._make_hashed(*hashes),
                                                '.js',
                                                self.cache_buster)

        self.assertGreater(len(urls), 1)

        names = []

        for url in urls:
            parsed = url_manager.parse_url(url.url)
            self.assertIsNotNone(parsed)
            self.assertIs(parsed.web_type, WebFileType.SCRIPT)
            self.assertFalse(parsed.debug)
            self.assertEqual(parsed.version, '1')

            names += parsed.names

        self.assertEqual(names, hashes)

    def test_build_composite_urls_is_deterministic(self) -> None:
        """Testing UrlManager.build_composite_urls produces the same split
        points for the same input
        """
        url_manager = self._create_url_manager(max_url_length=60)
        files = self._make_hashed(*['%08x' % i for i in range(25)])

        self.assertEqual(
            url_manager.build_composite_urls(files, '.js',
                                             self.cache_buster),
            url_manager.build_composite_urls(files, '.js',
                                             self.cache_buster))

    def test_build_composite_urls_with_oversized_first_file(self) -> None:
        """Testing UrlManager.build_composite_urls with a single file too
        long for the maximum URL length
        """
        url_manager = self._create_url_manager(max_url_length=20)

        message = (
            'The path for the single dependency "aaaaaaaa" exceeds the '
            'maximum URL length (20).'
        )

        with self.assertRaisesMessage(UrlLengthExceededError, message) as ctx:
            url_manager.build_composite_urls(self._make_hashed('aaaaaaaa'),
                                             '.js',
                                             self.cache_buster)

        self.assertEqual(ctx.exception.file_path, 'aaaaaaaa')
        self.assertEqual(ctx.exception.max_url_length, 20)

    def test_build_composite_urls_with_oversized_later_file(self) -> None:
        """Testing UrlManager.build_composite_urls with a later file too
        long for the maximum URL length
        """
        url_manager = self._create_url_manager(max_url_length=30)

        with self.assertRaises(UrlLengthExceededError) as ctx:
            url_manager.build_composite_urls(
                self._make_hashed('aaaa', 'b' * 19),
                '.js',
                self.cache_buster)

        self.assertEqual(ctx.exception.file_path, 'b' * 19)

    def test_build_composite_urls_measures_escaped_names(self) -> None:
        """Testing UrlManager.build_composite_urls measures names by their
        escaped length
        """
        # "ééé." escapes to 19 characters.
        files = self._make_hashed('ééé')

        url_manager = self._create_url_manager(max_url_length=37)
        urls = url_manager.build_composite_urls(files, '.js',
                                                self.cache_buster)

        self.assertEqual(urls[0].url, '/sc/%C3%A9%C3%A9%C3%A9.js.v1')
        self.assertLess(len(urls[0].url), 37)

        url_manager = self._create_url_manager(max_url_length=36)

        with self.assertRaises(UrlLengthExceededError):
            url_manager.build_composite_urls(files, '.js', self.cache_buster)

    def test_build_composite_urls_without_cache_buster(self) -> None:
        """Testing UrlManager.build_composite_urls without a cache-buster"""
        url_manager = self._create_url_manager()

        with self.assertRaises(ValueError):
            url_manager.build_composite_urls(self._make_hashed('aaaaaaaa'),
                                             '.js',
                                             None)

    def test_build_composite_urls_with_dotted_cache_buster(self) -> None:
        """Testing UrlManager.build_composite_urls with a cache-buster value
        containing a period
        """
        url_manager = self._create_url_manager()
        cache_buster = FixedCacheBuster(url_manager.config, '1.2.3')

        with self.assertRaises(ValueError):
            url_manager.build_composite_urls(self._make_hashed('aaaaaaaa'),
                                             '.js',
                                             cache_buster)

    def test_parse_url_round_trip(self) -> None:
        """Testing UrlManager.parse_url recovers the mode and type of
        generated bundle and composite URLs
        """
        url_manager = self._create_url_manager()

        for file_type in (WebFileType.SCRIPT, WebFileType.STYLE):
            extension = file_type.extension

            for debug in (False, True):
                parsed = url_manager.parse_url(url_manager.build_bundle_url(
                    'site', extension, debug, self.cache_buster))

                self.assertIsNotNone(parsed)
                self.assertEqual(list(parsed.names), ['site'])
                self.assertIs(parsed.web_type, file_type)
                self.assertEqual(parsed.debug, debug)
                self.assertEqual(parsed.version, '1')

            hashed_files = [
                HashedWebFile(
                    web_file=WebFile(file_path='file%d%s' % (i, extension),
                                     file_type=file_type),
                    hash=file_hash)
                for i, file_hash in enumerate(('aaaaaaaa', 'bbbbbbbb'))
            ]

            urls = url_manager.build_composite_urls(hashed_files, extension,
                                                    self.cache_buster)
            self.assertEqual(len(urls), 1)

            parsed = url_manager.parse_url(urls[0].url)

            self.assertIsNotNone(parsed)
            self.assertEqual(list(parsed.names), ['aaaaaaaa', 'bbbbbbbb'])
            self.assertIs(parsed.web_type, file_type)
            self.assertFalse(parsed.debug)
            self.assertEqual(parsed.version, '1')

    def test_parse_url_with_composite(self) -> None:
        """Testing UrlManager.parse_url with multiple names"""
        parsed = self._create_url_manager().parse_url('a.b.css.v123')

        self.assertIsNotNone(parsed)
        self.assertEqual(list(parsed.names), ['a', 'b'])
        self.assertIs(parsed.web_type, WebFileType.STYLE)
        self.assertFalse(parsed.debug)
        self.assertEqual(parsed.version, '123')

    def test_parse_url_with_debug(self) -> None:
        """Testing UrlManager.parse_url with debug mode"""
        parsed = self._create_url_manager().parse_url('x.js.dabc')

        self.assertIsNotNone(parsed)
        self.assertEqual(list(parsed.names), ['x'])
        self.assertIs(parsed.web_type, WebFileType.SCRIPT)
        self.assertTrue(parsed.debug)
        self.assertEqual(parsed.version, 'abc')

    def test_parse_url_with_uppercase_type(self) -> None:
        """Testing UrlManager.parse_url matches the type case-insensitively"""
        parsed = self._create_url_manager().parse_url('x.CSS.v1')

        self.assertIsNotNone(parsed)
        self.assertIs(parsed.web_type, WebFileType.STYLE)

    def test_parse_url_with_path(self) -> None:
        """Testing UrlManager.parse_url with leading directories"""
        parsed = self._create_url_manager().parse_url('/sb/site.js.v1')

        self.assertIsNotNone(parsed)
        self.assertEqual(list(parsed.names), ['site'])

    def test_parse_url_with_malformed(self) -> None:
        """Testing UrlManager.parse_url with malformed names"""
        url_manager = self._create_url_manager()

        for path in ('onlyone',
                     'a.js',
                     'a.unknown.v1',
                     'a.js.x1',
                     'a.js.',
                     '.js.v1',
                     'a..js.v1',
                     ''):
            self.assertIsNone(url_manager.parse_url(path),
                              'Expected "%s" to be rejected' % path)


class TrimExtensionTests(TestCase):
    """Unit tests for djbundles.url_manager.trim_extension."""

    def test_with_extension(self) -> None:
        """Testing trim_extension with a matching extension"""
        self.assertEqual(trim_extension('abc.js', '.js'), 'abc')

    def test_with_other_extension(self) -> None:
        """Testing trim_extension with a different extension"""
        self.assertEqual(trim_extension('abc.css', '.js'), 'abc.css')
