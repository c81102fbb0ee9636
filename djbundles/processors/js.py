"""Pre-processors for JavaScript files."""

from __future__ import annotations

from asgiref.sync import sync_to_async
from jsmin import jsmin

from djbundles.processors.base import BasePreProcessor, FileProcessContext


class JsMinifier(BasePreProcessor):
    """Minifies JavaScript using :pypi:`jsmin`.

    Minification runs in a worker thread, keeping the event loop free.
    """

    processor_id = 'js-min'

    async def process(
        self,
        context: FileProcessContext,
    ) -> str:
        """Minify the JavaScript.

        Args:
            context (djbundles.processors.base.FileProcessContext):
                The file and its current text.

        Returns:
            str:
            The minified JavaScript.
        """
        return await sync_to_async(jsmin, thread_sensitive=False)(
            context.file_content)
