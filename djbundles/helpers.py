"""Request-scoped helpers for registering and rendering web files."""

from __future__ import annotations

import logging
from typing import (TYPE_CHECKING, Iterable, List, Optional, Sequence,
                    Union)

from django.utils.html import format_html_join

from djbundles.environment import get_environment
from djbundles.models import WebFile, WebFileType

if TYPE_CHECKING:
    from django.utils.safestring import SafeString

    from djbundles.bundles import BundleHandle
    from djbundles.environment import BundlesEnvironment
    from djbundles.models import BundleOptions
    from djbundles.processors.pipeline import PreProcessPipeline


logger = logging.getLogger(__name__)


_TAG_FORMATS = {
    WebFileType.SCRIPT: '<script src="{0}" type="text/javascript"></script>',
    WebFileType.STYLE: '<link href="{0}" rel="stylesheet" type="text/css">',
}


class BundleRenderer:
    """Registers and renders the web files needed by a single request.

    Files can be rendered from a named bundle, or from files registered
    for the request through :py:meth:`requires_js` and
    :py:meth:`requires_css`.

    In debug mode, each file is rendered individually with its unprocessed
    path. Otherwise, files are processed and cached, and rendered through
    bundle or composite URLs.

    This should be created for each request. It is not safe to share across
    requests.
    """

    ######################
    # Instance variables #
    ######################

    #: Whether to render in debug mode by default.
    debug: bool

    #: The environment providing the components.
    environment: BundlesEnvironment

    #: The files registered for this request, in registration order.
    _registered_files: List[WebFile]

    def __init__(
        self,
        environment: Optional[BundlesEnvironment] = None,
        *,
        debug: Optional[bool] = None,
    ) -> None:
        """Initialize the renderer.

        Args:
            environment (djbundles.environment.BundlesEnvironment, optional):
                The environment to use. This defaults to the process-wide
                environment.

            debug (bool, optional):
                Whether to render in debug mode by default. This defaults to
                the configured ``DEBUG`` value.
        """
        if environment is None:
            environment = get_environment()

        if debug is None:
            debug = environment.config.debug

        self.environment = environment
        self.debug = debug
        self._registered_files = []

    def requires(
        self,
        *files: Union[str, WebFile],
    ) -> BundleRenderer:
        """Register files needed by the request, of any type.

        Paths are typed by their extension.

        Args:
            *files (tuple):
                The files or paths to register.

        Returns:
            BundleRenderer:
            This renderer, for chaining calls.

        Raises:
            ValueError:
                A path doesn't end in a JavaScript or CSS extension.
        """
        for web_file in files:
            if isinstance(web_file, str):
                web_file = WebFile(file_path=web_file,
                                   file_type=WebFileType.for_path(web_file))

            self._registered_files.append(web_file)

        return self

    def requires_js(
        self,
        *files: Union[str, WebFile],
    ) -> BundleRenderer:
        """Register JavaScript files needed by the request.

        Args:
            *files (tuple):
                The files or paths to register.

        Returns:
            BundleRenderer:
            This renderer, for chaining calls.
        """
        self._register(WebFileType.SCRIPT, files)

        return self

    def requires_css(
        self,
        *files: Union[str, WebFile],
    ) -> BundleRenderer:
        """Register CSS files needed by the request.

        Args:
            *files (tuple):
                The files or paths to register.

        Returns:
            BundleRenderer:
            This renderer, for chaining calls.
        """
        self._register(WebFileType.STYLE, files)

        return self

    def create_js_bundle(
        self,
        bundle_name: str,
        files: Sequence[Union[str, WebFile]],
        *,
        options: Optional[BundleOptions] = None,
        pipeline: Optional[PreProcessPipeline] = None,
    ) -> BundleHandle:
        """Create a JavaScript bundle, if it doesn't already exist.

        Args:
            bundle_name (str):
                The name of the bundle.

            files (list):
                The files or paths in the bundle.

            options (djbundles.models.BundleOptions, optional):
                Options for the bundle.

            pipeline (djbundles.processors.pipeline.PreProcessPipeline,
                      optional):
                A pipeline for files that don't specify their own.

        Returns:
            djbundles.bundles.BundleHandle:
            The handle for the bundle.
        """
        return self.environment.bundle_manager.create(
            bundle_name, WebFileType.SCRIPT, files,
            options=options,
            pipeline=pipeline)

    def create_css_bundle(
        self,
        bundle_name: str,
        files: Sequence[Union[str, WebFile]],
        *,
        options: Optional[BundleOptions] = None,
        pipeline: Optional[PreProcessPipeline] = None,
    ) -> BundleHandle:
        """Create a CSS bundle, if it doesn't already exist.

        Args:
            bundle_name (str):
                The name of the bundle.

            files (list):
                The files or paths in the bundle.

            options (djbundles.models.BundleOptions, optional):
                Options for the bundle.

            pipeline (djbundles.processors.pipeline.PreProcessPipeline,
                      optional):
                A pipeline for files that don't specify their own.

        Returns:
            djbundles.bundles.BundleHandle:
            The handle for the bundle.
        """
        return self.environment.bundle_manager.create(
            bundle_name, WebFileType.STYLE, files,
            options=options,
            pipeline=pipeline)

    async def generate_js_urls(
        self,
        bundle_name: Optional[str] = None,
        *,
        pipeline: Optional[PreProcessPipeline] = None,
        debug: Optional[bool] = None,
    ) -> List[str]:
        """Return the URLs for JavaScript files.

        Args:
            bundle_name (str, optional):
                The name of a bundle to render. If not provided, the
                JavaScript files registered for the request are rendered.

            pipeline (djbundles.processors.pipeline.PreProcessPipeline,
                      optional):
                A pipeline for registered files that don't specify their
                own.

            debug (bool, optional):
                Whether to render in debug mode.

        Returns:
            list of str:
            The URLs, in order.

        Raises:
            djbundles.errors.BundleNotFoundError:
                The bundle is not registered.

            djbundles.errors.PreProcessError:
                A file could not be processed.
        """
        return await self._generate_urls(WebFileType.SCRIPT,
                                         bundle_name=bundle_name,
                                         pipeline=pipeline,
                                         debug=debug)

    async def generate_css_urls(
        self,
        bundle_name: Optional[str] = None,
        *,
        pipeline: Optional[PreProcessPipeline] = None,
        debug: Optional[bool] = None,
    ) -> List[str]:
        """Return the URLs for CSS files.

        Args:
            bundle_name (str, optional):
                The name of a bundle to render. If not provided, the CSS
                files registered for the request are rendered.

            pipeline (djbundles.processors.pipeline.PreProcessPipeline,
                      optional):
                A pipeline for registered files that don't specify their
                own.

            debug (bool, optional):
                Whether to render in debug mode.

        Returns:
            list of str:
            The URLs, in order.

        Raises:
            djbundles.errors.BundleNotFoundError:
                The bundle is not registered.

            djbundles.errors.PreProcessError:
                A file could not be processed.
        """
        return await self._generate_urls(WebFileType.STYLE,
                                         bundle_name=bundle_name,
                                         pipeline=pipeline,
                                         debug=debug)

    async def render_js(
        self,
        bundle_name: Optional[str] = None,
        **kwargs,
    ) -> SafeString:
        """Return ``<script>`` tags for JavaScript files.

        Args:
            bundle_name (str, optional):
                The name of a bundle to render. If not provided, the
                JavaScript files registered for the request are rendered.

            **kwargs (dict):
                Additional arguments for :py:meth:`generate_js_urls`.

        Returns:
            django.utils.safestring.SafeString:
            The HTML for the tags.
        """
        urls = await self.generate_js_urls(bundle_name, **kwargs)

        return format_html_join('', _TAG_FORMATS[WebFileType.SCRIPT],
                                ((url,) for url in urls))

    async def render_css(
        self,
        bundle_name: Optional[str] = None,
        **kwargs,
    ) -> SafeString:
        """Return ``<link>`` tags for CSS files.

        Args:
            bundle_name (str, optional):
                The name of a bundle to render. If not provided, the CSS
                files registered for the request are rendered.

            **kwargs (dict):
                Additional arguments for :py:meth:`generate_css_urls`.

        Returns:
            django.utils.safestring.SafeString:
            The HTML for the tags.
        """
        urls = await self.generate_css_urls(bundle_name, **kwargs)

        return format_html_join('', _TAG_FORMATS[WebFileType.STYLE],
                                ((url,) for url in urls))

    def _register(
        self,
        file_type: WebFileType,
        files: Iterable[Union[str, WebFile]],
    ) -> None:
        """Register files for the request.

        Args:
            file_type (djbundles.models.WebFileType):
                The type of the files.

            files (list):
                The files or paths to register.

        Raises:
            ValueError:
                A file's type doesn't match the requested type.
        """
        for web_file in files:
            if isinstance(web_file, str):
                web_file = WebFile(file_path=web_file, file_type=file_type)
            elif web_file.file_type is not file_type:
                raise ValueError('"%s" is not a %s file.'
                                 % (web_file.file_path, file_type.value))

            self._registered_files.append(web_file)

    async def _generate_urls(
        self,
        file_type: WebFileType,
        *,
        bundle_name: Optional[str],
        pipeline: Optional[PreProcessPipeline],
        debug: Optional[bool],
    ) -> List[str]:
        """Return the URLs for a bundle or the registered files.

        Args:
            file_type (djbundles.models.WebFileType):
                The type of files to render.

            bundle_name (str):
                The name of a bundle to render, or ``None`` to render the
                registered files.

            pipeline (djbundles.processors.pipeline.PreProcessPipeline):
                A pipeline for registered files that don't specify their
                own.

            debug (bool):
                Whether to render in debug mode, or ``None`` for the default.

        Returns:
            list of str:
            The URLs, in order.
        """
        if debug is None:
            debug = self.debug

        if bundle_name is not None:
            return await self._generate_bundle_urls(bundle_name, file_type,
                                                    debug)

        files = [
            web_file
            for web_file in self._registered_files
            if web_file.file_type is file_type
        ]

        return await self._generate_file_urls(files, file_type, pipeline,
                                              debug)

    async def _generate_bundle_urls(
        self,
        bundle_name: str,
        file_type: WebFileType,
        debug: bool,
    ) -> List[str]:
        """Return the URLs for a bundle.

        In production mode, the bundle's local files are served through a
        single bundle URL, placed where the first local file would be.
        External files are rendered with their own URLs.

        Args:
            bundle_name (str):
                The name of the bundle.

            file_type (djbundles.models.WebFileType):
                The type of files to render.

            debug (bool):
                Whether to render in debug mode.

        Returns:
            list of str:
            The URLs, in order.
        """
        env = self.environment
        bundle = env.bundle_manager.get(bundle_name)

        if bundle.file_type is not file_type:
            raise ValueError('Bundle "%s" does not contain %s files.'
                             % (bundle_name, file_type.value))

        files = env.resolve_files(bundle.files, pipeline=bundle.pipeline)

        if debug:
            return [
                env.file_system.normalize_web_path(web_file.file_path)
                for web_file in files
            ]

        is_external = env.file_system.is_external_path
        local_files = [
            web_file
            for web_file in files
            if not is_external(web_file.file_path)
        ]

        await env.preprocess_manager.process_and_cache_files(
            local_files,
            cache_buster=env.cache_buster)

        bundle_url = env.url_manager.build_bundle_url(
            bundle_name, file_type.extension, False, env.cache_buster)
        urls: List[str] = []

        for web_file in files:
            if is_external(web_file.file_path):
                urls.append(web_file.file_path)
            elif bundle_url not in urls:
                urls.append(bundle_url)

        return urls

    async def _generate_file_urls(
        self,
        files: Sequence[WebFile],
        file_type: WebFileType,
        pipeline: Optional[PreProcessPipeline],
        debug: bool,
    ) -> List[str]:
        """Return the URLs for a list of files.

        In production mode, the files are batched and served through
        composite URLs.

        Args:
            files (list of djbundles.models.WebFile):
                The files, in declaration order.

            file_type (djbundles.models.WebFileType):
                The type of files to render.

            pipeline (djbundles.processors.pipeline.PreProcessPipeline):
                A pipeline for files that don't specify their own.

            debug (bool):
                Whether to render in debug mode.

        Returns:
            list of str:
            The URLs, in order.
        """
        env = self.environment

        if pipeline is None:
            pipeline = env.pipeline_factory.get_default(file_type)

        ordered_files = env.resolve_files(files, pipeline=pipeline)

        if debug:
            return [
                env.file_system.normalize_web_path(web_file.file_path)
                for web_file in ordered_files
            ]

        urls: List[str] = []

        for batch in env.file_batcher.batch(ordered_files):
            if batch.is_external:
                urls.append(batch.originals[0].file_path)
                continue

            await env.preprocess_manager.process_and_cache_files(
                batch.originals,
                cache_buster=env.cache_buster)

            urls += [
                file_set_url.url
                for file_set_url in env.url_manager.build_composite_urls(
                    batch.hashed, file_type.extension, env.cache_buster)
            ]

        logger.debug('Generated %d %s URLs for %d files',
                     len(urls), file_type.value, len(ordered_files))

        return urls
