"""Bundle definitions and the bundle registry."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import (TYPE_CHECKING, Dict, Iterator, List, Mapping, Optional,
                    Sequence, TypedDict, Union)

from django.core.exceptions import ImproperlyConfigured

from djbundles.errors import BundleNotFoundError
from djbundles.models import (Bundle,
                              BundleEnvironmentOptions,
                              BundleOptions,
                              CacheControlOptions,
                              WebFile,
                              WebFileType)
from djbundles.signals import bundle_created

if TYPE_CHECKING:
    from typing_extensions import NotRequired

    from djbundles.processors.pipeline import (PreProcessPipeline,
                                               PreProcessPipelineFactory)


logger = logging.getLogger(__name__)


class StaticBundleFile(TypedDict):
    """Definition for a file within a static bundle."""

    #: The path to the file.
    path: str

    #: The declared priority of the file.
    order: NotRequired[int]

    #: Paths of files that must be emitted before this file.
    dependencies: NotRequired[Sequence[str]]


class StaticCacheControl(TypedDict):
    """Definition for a bundle's cache control options."""

    #: Whether to send an ETag header.
    enable_etag: NotRequired[bool]

    #: The maximum age for the Cache-Control header, in seconds.
    max_age: NotRequired[int]


class StaticBundle(TypedDict):
    """Definition for a static bundle.

    These are listed in ``DJBUNDLES['BUNDLES']``, keyed by bundle name.
    """

    #: The type of files in the bundle (``js`` or ``css``).
    file_type: str

    #: The files in the bundle, in declaration order.
    source_filenames: Sequence[Union[str, StaticBundleFile]]

    #: Cache control options used in production mode.
    cache_control: NotRequired[StaticCacheControl]

    #: Cache control options used in debug mode.
    debug_cache_control: NotRequired[StaticCacheControl]

    #: The IDs of the pre-processors used for files in the bundle.
    pipeline: NotRequired[Sequence[str]]


class BundleCreateStatus(Enum):
    """The result of a request to create a bundle."""

    #: The bundle was registered.
    INSERTED = 'inserted'

    #: A bundle with the same name already existed. Nothing was changed.
    ALREADY_EXISTS = 'already-exists'


@dataclass(frozen=True)
class BundleHandle:
    """A handle returned when creating a bundle."""

    #: The name of the bundle.
    name: str

    #: The result of the creation request.
    status: BundleCreateStatus

    #: The registered bundle.
    #:
    #: This is ``None`` if the bundle already existed. The existing bundle's
    #: files may differ from the ones that were passed in.
    bundle: Optional[Bundle] = None

    @property
    def created(self) -> bool:
        """Whether the bundle was registered by this request.

        Type:
            bool
        """
        return self.status is BundleCreateStatus.INSERTED


class BundleManager:
    """A registry of bundles, keyed by name.

    Bundles are write-once. Once a name is registered, later requests to
    create a bundle with that name are ignored, without error.

    Lookups read an immutable snapshot of the registry, and never block.
    Registration builds a new snapshot under a lock and publishes it in a
    single assignment.
    """

    ######################
    # Instance variables #
    ######################

    #: The factory used to build pipelines for static bundles.
    pipeline_factory: Optional[PreProcessPipelineFactory]

    #: The current snapshot of registered bundles.
    _bundles: Mapping[str, Bundle]

    #: The lock held while registering bundles.
    _write_lock: threading.Lock

    def __init__(
        self,
        *,
        pipeline_factory: Optional[PreProcessPipelineFactory] = None,
    ) -> None:
        """Initialize the registry.

        Args:
            pipeline_factory (djbundles.processors.pipeline.
                              PreProcessPipelineFactory, optional):
                The factory used to build pipelines listed in static bundle
                definitions.
        """
        self.pipeline_factory = pipeline_factory
        self._bundles = MappingProxyType({})
        self._write_lock = threading.Lock()

    def create(
        self,
        name: str,
        file_type: WebFileType,
        files: Sequence[Union[str, WebFile]],
        options: Optional[BundleOptions] = None,
        pipeline: Optional[PreProcessPipeline] = None,
    ) -> BundleHandle:
        """Create a bundle, if one with the name doesn't already exist.

        Args:
            name (str):
                The name of the bundle.

            file_type (djbundles.models.WebFileType):
                The type of files in the bundle.

            files (list):
                The files in the bundle, in declaration order. Each may be
                a :py:class:`~djbundles.models.WebFile` or a path.

            options (djbundles.models.BundleOptions, optional):
                Options for the bundle.

            pipeline (djbundles.processors.pipeline.PreProcessPipeline,
                      optional):
                A pipeline for files that don't specify their own.

        Returns:
            BundleHandle:
            A handle describing whether the bundle was registered.

        Raises:
            ValueError:
                The name was empty, or a file's type doesn't match the
                bundle's type.
        """
        if not name:
            raise ValueError('Bundles must have a name.')

        if name in self._bundles:
            logger.debug('Ignoring request to create existing bundle "%s"',
                         name)

            return BundleHandle(name=name,
                                status=BundleCreateStatus.ALREADY_EXISTS)

        web_files = self._normalize_files(name, file_type, files)

        with self._write_lock:
            if name in self._bundles:
                logger.debug('Ignoring request to create existing bundle '
                             '"%s"',
                             name)

                return BundleHandle(name=name,
                                    status=BundleCreateStatus.ALREADY_EXISTS)

            bundle = Bundle(name=name,
                            file_type=file_type,
                            files=tuple(web_files),
                            options=options or BundleOptions(),
                            pipeline=pipeline)

            bundles = dict(self._bundles)
            bundles[name] = bundle
            self._bundles = MappingProxyType(bundles)

        logger.debug('Created %s bundle "%s" with %d files',
                     file_type.value, name, len(web_files))

        bundle_created.send(sender=type(self), bundle=bundle)

        return BundleHandle(name=name,
                            status=BundleCreateStatus.INSERTED,
                            bundle=bundle)

    def exists(
        self,
        name: str,
    ) -> bool:
        """Return whether a bundle is registered.

        Args:
            name (str):
                The name of the bundle.

        Returns:
            bool:
            ``True`` if the bundle is registered.
        """
        return name in self._bundles

    def get(
        self,
        name: str,
    ) -> Bundle:
        """Return a registered bundle.

        Args:
            name (str):
                The name of the bundle.

        Returns:
            djbundles.models.Bundle:
            The bundle.

        Raises:
            djbundles.errors.BundleNotFoundError:
                No bundle is registered with this name.
        """
        try:
            return self._bundles[name]
        except KeyError:
            raise BundleNotFoundError(name)

    def get_or_none(
        self,
        name: str,
    ) -> Optional[Bundle]:
        """Return a registered bundle, or ``None``.

        Args:
            name (str):
                The name of the bundle.

        Returns:
            djbundles.models.Bundle:
            The bundle, or ``None`` if no bundle is registered with this
            name.
        """
        return self._bundles.get(name)

    def get_files(
        self,
        name: str,
    ) -> Sequence[WebFile]:
        """Return the files in a registered bundle.

        Args:
            name (str):
                The name of the bundle.

        Returns:
            list of djbundles.models.WebFile:
            The files, in declaration order.

        Raises:
            djbundles.errors.BundleNotFoundError:
                No bundle is registered with this name.
        """
        return self.get(name).files

    def load_static_bundles(
        self,
        bundles: Mapping[str, StaticBundle],
    ) -> List[BundleHandle]:
        """Create bundles from static definitions.

        Args:
            bundles (dict):
                A mapping of bundle names to
                :py:class:`StaticBundle` definitions.

        Returns:
            list of BundleHandle:
            The handle for each bundle.

        Raises:
            django.core.exceptions.ImproperlyConfigured:
                A definition was invalid.
        """
        handles: List[BundleHandle] = []

        for name, definition in bundles.items():
            file_type = WebFileType.from_tag(definition.get('file_type', ''))

            if file_type is None:
                raise ImproperlyConfigured(
                    'Bundle "%s" has an invalid file_type %r. It must be '
                    '"js" or "css".'
                    % (name, definition.get('file_type')))

            files: List[WebFile] = []

            for entry in definition.get('source_filenames', []):
                if isinstance(entry, str):
                    files.append(WebFile(file_path=entry,
                                         file_type=file_type))
                else:
                    files.append(WebFile(
                        file_path=entry['path'],
                        file_type=file_type,
                        order=entry.get('order', 0),
                        dependent_files=tuple(entry.get('dependencies',
                                                        ()))))

            pipeline: Optional[PreProcessPipeline] = None
            processor_ids = definition.get('pipeline')

            if processor_ids is not None:
                if self.pipeline_factory is None:
                    raise ImproperlyConfigured(
                        'Bundle "%s" lists a pipeline, but no pipeline '
                        'factory is available.'
                        % name)

                pipeline = self.pipeline_factory.get_pipeline(*processor_ids)

            handles.append(self.create(
                name,
                file_type,
                files,
                options=self._build_options(definition),
                pipeline=pipeline))

        return handles

    def _normalize_files(
        self,
        name: str,
        file_type: WebFileType,
        files: Sequence[Union[str, WebFile]],
    ) -> List[WebFile]:
        """Return files for a bundle as WebFile instances.

        Args:
            name (str):
                The name of the bundle.

            file_type (djbundles.models.WebFileType):
                The type of files in the bundle.

            files (list):
                The files or paths.

        Returns:
            list of djbundles.models.WebFile:
            The files.

        Raises:
            ValueError:
                A file's type doesn't match the bundle's type.
        """
        web_files: List[WebFile] = []

        for web_file in files:
            if isinstance(web_file, str):
                web_file = WebFile(file_path=web_file, file_type=file_type)
            elif web_file.file_type is not file_type:
                raise ValueError(
                    'Cannot add %s file "%s" to %s bundle "%s".'
                    % (web_file.file_type.value, web_file.file_path,
                       file_type.value, name))

            web_files.append(web_file)

        return web_files

    def _build_options(
        self,
        definition: StaticBundle,
    ) -> BundleOptions:
        """Return bundle options from a static definition.

        Args:
            definition (StaticBundle):
                The static bundle definition.

        Returns:
            djbundles.models.BundleOptions:
            The bundle options.
        """
        defaults = BundleOptions()
        options: Dict[str, BundleEnvironmentOptions] = {}

        for key, attr in (('cache_control', 'production'),
                          ('debug_cache_control', 'debug')):
            default_env: BundleEnvironmentOptions = getattr(defaults, attr)
            cache_control = definition.get(key)

            if cache_control is None:
                options[attr] = default_env
            else:
                default_cc = default_env.cache_control
                options[attr] = BundleEnvironmentOptions(
                    cache_control=CacheControlOptions(
                        enable_etag=cache_control.get(
                            'enable_etag', default_cc.enable_etag),
                        max_age=cache_control.get(
                            'max_age', default_cc.max_age)))

        return BundleOptions(**options)

    def __iter__(self) -> Iterator[Bundle]:
        return iter(list(self._bundles.values()))

    def __len__(self) -> int:
        return len(self._bundles)

    def __contains__(
        self,
        name: object,
    ) -> bool:
        return name in self._bundles
