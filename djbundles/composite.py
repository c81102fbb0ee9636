"""Assembly of delivered bundle and composite file content."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from asgiref.sync import sync_to_async

from djbundles.errors import PreProcessError
from djbundles.models import WebFileType

if TYPE_CHECKING:
    from djbundles.environment import BundlesEnvironment
    from djbundles.models import ParsedUrlPath


logger = logging.getLogger(__name__)


#: The separators placed between files in assembled output.
JOIN_STRINGS = {
    WebFileType.SCRIPT: ';\n',
    WebFileType.STYLE: '\n',
}


@dataclass(frozen=True)
class CompositeContent:
    """Assembled content ready for delivery."""

    #: The key identifying the content, used for ETags.
    file_key: str

    #: The assembled content.
    content: str

    #: The type of the content.
    file_type: WebFileType

    @property
    def mime_type(self) -> str:
        """The MIME type of the content.

        Type:
            str
        """
        return self.file_type.mime_type


class CompositeFileBuilder:
    """Assembles the content served for bundle and composite URLs.

    Composite content is read from the per-file cache populated when the
    URLs were rendered. Bundle content is processed on demand.
    """

    def __init__(
        self,
        environment: BundlesEnvironment,
    ) -> None:
        """Initialize the builder.

        Args:
            environment (djbundles.environment.BundlesEnvironment):
                The environment providing the components.
        """
        self.environment = environment

    async def build_composite(
        self,
        parsed_url: ParsedUrlPath,
    ) -> Optional[CompositeContent]:
        """Return the content for a composite URL.

        Args:
            parsed_url (djbundles.models.ParsedUrlPath):
                The parsed composite URL.

        Returns:
            CompositeContent:
            The assembled content, or ``None`` if any file named in the URL
            has not been processed in the current cache epoch.
        """
        env = self.environment
        manager = env.preprocess_manager
        file_type = parsed_url.web_type
        parts: List[str] = []

        if parsed_url.version != env.cache_buster.get_value():
            logger.debug('Composite URL requested with stale version "%s"',
                         parsed_url.version)

        for name in parsed_url.names:
            key = manager.get_cache_key(name, file_type, env.cache_buster)
            content = await manager.read_cached(key)

            if content is None:
                logger.warning('Composite file "%s" was requested, but '
                               'has not been processed',
                               key)

                return None

            parts.append(content)

        output = '.'.join(parsed_url.names)

        return CompositeContent(file_key=env.hasher.hash(output),
                                content=JOIN_STRINGS[file_type].join(parts),
                                file_type=file_type)

    async def build_bundle(
        self,
        bundle_name: str,
        *,
        debug: bool = False,
    ) -> CompositeContent:
        """Return the content for a bundle.

        In debug mode, the original file content is returned. Otherwise,
        each file is processed (or loaded from cache) first. Externally
        hosted files can't be included, and are skipped.

        Args:
            bundle_name (str):
                The name of the bundle.

            debug (bool, optional):
                Whether to return unprocessed content.

        Returns:
            CompositeContent:
            The assembled content.

        Raises:
            djbundles.errors.BundleNotFoundError:
                The bundle is not registered.

            djbundles.errors.PreProcessError:
                A file in the bundle could not be processed.
        """
        env = self.environment
        bundle = env.bundle_manager.get(bundle_name)
        files = [
            web_file
            for web_file in env.resolve_files(bundle.files,
                                              pipeline=bundle.pipeline)
            if not env.file_system.is_external_path(web_file.file_path)
        ]

        if debug:
            read_contents = sync_to_async(env.file_system.read_contents,
                                          thread_sensitive=False)
            parts = [
                await read_contents(
                    env.file_system.normalize_web_path(web_file.file_path))
                for web_file in files
            ]
        else:
            manager = env.preprocess_manager
            keys = await manager.process_and_cache_files(
                files,
                cache_buster=env.cache_buster)
            parts = []

            for key in keys:
                content = await manager.read_cached(key)

                if content is None:
                    raise PreProcessError(
                        key, reason='processed content was removed from the '
                                    'cache')

                parts.append(content)

        return CompositeContent(file_key=bundle_name,
                                content=JOIN_STRINGS[bundle.file_type].join(
                                    parts),
                                file_type=bundle.file_type)
