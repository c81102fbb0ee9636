"""Unit tests for djbundles.composite."""

from __future__ import annotations

from djbundles.composite import CompositeFileBuilder
from djbundles.errors import BundleNotFoundError
from djbundles.helpers import BundleRenderer
from djbundles.models import WebFileType
from djbundles.testing.testcases import TestCase


class CompositeFileBuilderTests(TestCase):
    """Unit tests for djbundles.composite.CompositeFileBuilder."""

    def setUp(self) -> None:
        super().setUp()

        self.env = self.create_environment()
        self.builder = CompositeFileBuilder(self.env)
        self.renderer = BundleRenderer(self.env)

        # A pipeline without stages leaves content unchanged.
        self.pipeline = self.env.pipeline_factory.get_pipeline()

        self.write_static_file('js/a.js', 'var a;')
        self.write_static_file('js/b.js', 'var b;')
        self.write_static_file('css/a.css', 'a {}')
        self.write_static_file('css/b.css', 'b {}')

    async def test_build_composite(self) -> None:
        """Testing CompositeFileBuilder.build_composite with processed files
        """
        self.renderer.requires_js('js/a.js', 'js/b.js')
        urls = await self.renderer.generate_js_urls(pipeline=self.pipeline)

        parsed = self.env.url_manager.parse_url(urls[0])
        composite = await self.builder.build_composite(parsed)

        self.assertIsNotNone(composite)
        self.assertEqual(composite.content, 'var a;;\nvar b;')
        self.assertEqual(composite.file_key,
                         self.env.hasher.hash('.'.join(parsed.names)))
        self.assertIs(composite.file_type, WebFileType.SCRIPT)
        self.assertEqual(composite.mime_type, 'text/javascript')

    async def test_build_composite_with_styles(self) -> None:
        """Testing CompositeFileBuilder.build_composite with CSS files"""
        self.renderer.requires_css('css/a.css', 'css/b.css')
        urls = await self.renderer.generate_css_urls(pipeline=self.pipeline)

        composite = await self.builder.build_composite(
            self.env.url_manager.parse_url(urls[0]))

        self.assertEqual(composite.content, 'a {}\nb {}')
        self.assertEqual(composite.mime_type, 'text/css')

    async def test_build_composite_with_unprocessed(self) -> None:
        """Testing CompositeFileBuilder.build_composite with files that have
        not been processed
        """
        parsed = self.env.url_manager.parse_url('/sc/aaaaaaaa.bbbbbbbb.js.v1')

        self.assertIsNone(await self.builder.build_composite(parsed))

    async def test_build_bundle(self) -> None:
        """Testing CompositeFileBuilder.build_bundle"""
        self.renderer.create_js_bundle(
            'site',
            ['js/a.js', 'https://cdn.example.com/lib.js', 'js/b.js'],
            pipeline=self.pipeline)

        composite = await self.builder.build_bundle('site')

        self.assertEqual(composite.content, 'var a;;\nvar b;')
        self.assertEqual(composite.file_key, 'site')
        self.assertIs(composite.file_type, WebFileType.SCRIPT)

    async def test_build_bundle_with_debug(self) -> None:
        """Testing CompositeFileBuilder.build_bundle with debug=True returns
        unprocessed content
        """
        self.write_static_file('css/c.css', 'c {\n    color: red;\n}')
        self.renderer.create_css_bundle('site', ['css/a.css', 'css/c.css'])

        composite = await self.builder.build_bundle('site', debug=True)

        self.assertEqual(composite.content, 'a {}\nc {\n    color: red;\n}')

    async def test_build_bundle_with_default_pipeline(self) -> None:
        """Testing CompositeFileBuilder.build_bundle with the default
        pipeline
        """
        self.write_static_file('css/c.css', 'c {\n    color: red;\n}')
        self.renderer.create_css_bundle('site', ['css/c.css'])

        composite = await self.builder.build_bundle('site')

        self.assertIn('color:red', composite.content)
        self.assertNotIn('\n', composite.content)

    async def test_build_bundle_with_unknown(self) -> None:
        """Testing CompositeFileBuilder.build_bundle with an unknown bundle"""
        with self.assertRaises(BundleNotFoundError):
            await self.builder.build_bundle('missing')
