"""Pre-processors for CSS files."""

from __future__ import annotations

import logging
import re
from typing import FrozenSet, List
from urllib.parse import urljoin, urlsplit

from asgiref.sync import sync_to_async
from cssmin import cssmin

from djbundles.filesystem import is_external_path
from djbundles.processors.base import BasePreProcessor, FileProcessContext


logger = logging.getLogger(__name__)


_CSS_URL_RE = re.compile(r'url\(\s*([^)]+?)\s*\)', re.IGNORECASE)

_CSS_IMPORT_RE = re.compile(
    r'@import\s+'
    r'(?:url\(\s*)?'
    r'(?P<quote>[\'"]?)(?P<path>[^\'")\s;]+)(?P=quote)'
    r'\s*\)?'
    r'(?P<media>[^;]*);',
    re.IGNORECASE)


def rewrite_css_urls(
    content: str,
    css_location: str,
) -> str:
    """Rewrite relative ``url()`` references in CSS to absolute paths.

    External (``http://``, ``https://``, ``//``) and ``data:`` URLs are left
    alone. Query strings and fragments are preserved.

    Args:
        content (str):
            The CSS content.

        css_location (str):
            The absolute URL of the CSS file, which relative URLs are
            resolved against.

    Returns:
        str:
        The CSS with rewritten URLs.
    """
    def _replace(m: re.Match) -> str:
        url = m.group(1).strip('\'"')
        lower_url = url.lower()

        if not url or lower_url.startswith(('data:', '#')):
            return m.group(0)

        if lower_url.startswith(('http://', 'https://', '//')):
            new_url = url
        else:
            parts = urlsplit(urljoin(css_location, url))
            new_url = parts.path

            if parts.query:
                new_url += '?%s' % parts.query

            if parts.fragment:
                new_url += '#%s' % parts.fragment

        return 'url("%s")' % new_url

    return _CSS_URL_RE.sub(_replace, content)


class CssUrlProcessor(BasePreProcessor):
    """Rewrites relative URLs in CSS (such as image paths) to absolute paths.

    Once files are combined into a composite file served from a different
    location, relative URLs would no longer resolve. They're resolved against
    the site's base URL and the location of the original file.
    """

    processor_id = 'css-url'

    async def process(
        self,
        context: FileProcessContext,
    ) -> str:
        """Rewrite the URLs in the CSS.

        Args:
            context (djbundles.processors.base.FileProcessContext):
                The file and its current text.

        Returns:
            str:
            The CSS with rewritten URLs.
        """
        return rewrite_css_urls(
            context.file_content,
            urljoin(self.config.site_base_url, context.web_path))


class CssImportProcessor(BasePreProcessor):
    """Inlines local ``@import`` rules in CSS.

    Imported files are read and inlined recursively, with their relative URLs
    rewritten against their own location. Imports with media queries are
    wrapped in a matching ``@media`` block. External imports can't be inlined,
    and are moved to the top of the file, where CSS requires them.
    """

    processor_id = 'css-import'

    async def process(
        self,
        context: FileProcessContext,
    ) -> str:
        """Inline the imports in the CSS.

        Args:
            context (djbundles.processors.base.FileProcessContext):
                The file and its current text.

        Returns:
            str:
            The CSS with local imports inlined.

        Raises:
            FileNotFoundError:
                An imported file could not be found.
        """
        external_imports: List[str] = []
        content = await self._inline_imports(
            content=context.file_content,
            web_path=context.web_path,
            seen=frozenset([context.web_path]),
            external_imports=external_imports)

        if external_imports:
            content = '%s\n%s' % ('\n'.join(external_imports), content)

        return content

    async def _inline_imports(
        self,
        *,
        content: str,
        web_path: str,
        seen: FrozenSet[str],
        external_imports: List[str],
    ) -> str:
        """Inline the imports in a piece of CSS.

        Args:
            content (str):
                The CSS content.

            web_path (str):
                The web path of the file the content came from.

            seen (frozenset of str):
                The web paths already being inlined along this import chain.

            external_imports (list of str):
                A list to append external import rules to.

        Returns:
            str:
            The CSS with local imports inlined.
        """
        read_contents = sync_to_async(self.file_system.read_contents,
                                      thread_sensitive=False)
        pieces: List[str] = []
        pos = 0

        for m in _CSS_IMPORT_RE.finditer(content):
            pieces.append(content[pos:m.start()])
            pos = m.end()

            import_path = m.group('path')
            media = m.group('media').strip()

            if is_external_path(import_path):
                external_imports.append(m.group(0))
                continue

            import_web_path = urljoin(web_path, import_path)

            if import_web_path in seen:
                logger.warning('Skipping cyclic CSS import of "%s" from "%s"',
                               import_web_path, web_path)
                continue

            imported = await read_contents(import_web_path)
            imported = rewrite_css_urls(
                imported,
                urljoin(self.config.site_base_url, import_web_path))
            imported = await self._inline_imports(
                content=imported,
                web_path=import_web_path,
                seen=seen | {import_web_path},
                external_imports=external_imports)

            if media:
                imported = '@media %s {\n%s\n}' % (media, imported)

            pieces.append(imported)

        pieces.append(content[pos:])

        return ''.join(pieces)


class CssMinifier(BasePreProcessor):
    """Minifies CSS using :pypi:`cssmin`.

    Minification runs in a worker thread, keeping the event loop free.
    """

    processor_id = 'css-min'

    async def process(
        self,
        context: FileProcessContext,
    ) -> str:
        """Minify the CSS.

        Args:
            context (djbundles.processors.base.FileProcessContext):
                The file and its current text.

        Returns:
            str:
            The minified CSS.
        """
        return await sync_to_async(cssmin, thread_sensitive=False)(
            context.file_content)
