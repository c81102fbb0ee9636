"""Wiring of the Djbundles components.

A :py:class:`BundlesEnvironment` owns one instance of each component, built
from a :py:class:`~djbundles.settings.BundlesConfig`. Most callers should use
the process-wide environment returned by :py:func:`get_environment`.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, List, Optional, Sequence, Type

from django.core.exceptions import ImproperlyConfigured
from django.core.signals import setting_changed
from django.dispatch import receiver
from django.utils.module_loading import import_string

from djbundles.batching import FileBatcher
from djbundles.bundles import BundleManager
from djbundles.filesystem import FileSystemHelper
from djbundles.ordering import OrderedFileSet
from djbundles.processors.manager import PreProcessManager
from djbundles.processors.pipeline import PreProcessPipelineFactory
from djbundles.processors.registry import PreProcessorRegistry
from djbundles.settings import SETTINGS_NAME, get_bundles_config
from djbundles.storage import FileSystemCacheStorage
from djbundles.url_manager import UrlManager

if TYPE_CHECKING:
    from djbundles.cachebusters import BaseCacheBuster
    from djbundles.conventions import BaseFileProcessingConvention
    from djbundles.hashing import BaseHasher
    from djbundles.models import WebFile
    from djbundles.processors.pipeline import PreProcessPipeline
    from djbundles.settings import BundlesConfig
    from djbundles.storage import BaseCacheStorage


logger = logging.getLogger(__name__)


_environment: Optional[BundlesEnvironment] = None
_environment_lock = threading.Lock()


def _import_class(
    class_path: str,
    setting_key: str,
) -> Type:
    """Import a class configured in settings.

    Args:
        class_path (str):
            The full import path of the class.

        setting_key (str):
            The ``DJBUNDLES`` key the path came from, for error messages.

    Returns:
        type:
        The imported class.

    Raises:
        django.core.exceptions.ImproperlyConfigured:
            The class could not be imported.
    """
    try:
        return import_string(class_path)
    except ImportError as e:
        raise ImproperlyConfigured(
            'Unable to import %s["%s"] class "%s": %s'
            % (SETTINGS_NAME, setting_key, class_path, e))


class BundlesEnvironment:
    """The set of components used to register, render and deliver bundles.

    This is constructed once, and shared by all requests.
    """

    ######################
    # Instance variables #
    ######################

    #: The registry of bundles.
    bundle_manager: BundleManager

    #: The cache-buster providing URL version tokens.
    cache_buster: BaseCacheBuster

    #: The configuration the environment was built from.
    config: BundlesConfig

    #: The batcher used to group files for composite URLs.
    file_batcher: FileBatcher

    #: The helper used to locate and read source files.
    file_system: FileSystemHelper

    #: The hasher used for file hashes, composite keys and ETags.
    hasher: BaseHasher

    #: The factory providing pipelines and conventions.
    pipeline_factory: PreProcessPipelineFactory

    #: The manager processing and caching files.
    preprocess_manager: PreProcessManager

    #: The registry of available pre-processors.
    processor_registry: PreProcessorRegistry

    #: The storage holding processed content.
    storage: BaseCacheStorage

    #: The manager building and parsing URLs.
    url_manager: UrlManager

    def __init__(
        self,
        config: BundlesConfig,
        *,
        storage: Optional[BaseCacheStorage] = None,
    ) -> None:
        """Initialize the environment.

        Args:
            config (djbundles.settings.BundlesConfig):
                The configuration to build components from.

            storage (djbundles.storage.BaseCacheStorage, optional):
                The storage for processed content. This defaults to a
                :py:class:`~djbundles.storage.FileSystemCacheStorage` in
                the configured cache directory.

        Raises:
            django.core.exceptions.ImproperlyConfigured:
                A configured class could not be imported or set up.
        """
        self.config = config

        self.hasher = _import_class(config.hasher, 'HASHER')()
        self.cache_buster = _import_class(config.cache_buster,
                                          'CACHE_BUSTER')(config)

        conventions: List[BaseFileProcessingConvention] = [
            _import_class(class_path, 'CONVENTIONS')()
            for class_path in config.conventions
        ]

        self.file_system = FileSystemHelper(static_root=config.static_root,
                                            static_url=config.static_url,
                                            url_root=config.url_root)
        self.storage = storage or FileSystemCacheStorage(config.cache_dir)
        self.processor_registry = PreProcessorRegistry(
            config=config,
            file_system=self.file_system)
        self.pipeline_factory = PreProcessPipelineFactory(
            self.processor_registry,
            conventions=conventions)
        self.preprocess_manager = PreProcessManager(
            storage=self.storage,
            file_system=self.file_system,
            hasher=self.hasher,
            pipeline_factory=self.pipeline_factory)
        self.file_batcher = FileBatcher(
            file_system=self.file_system,
            hasher=self.hasher,
            pipeline_factory=self.pipeline_factory)
        self.url_manager = UrlManager(config=config, hasher=self.hasher)
        self.bundle_manager = BundleManager(
            pipeline_factory=self.pipeline_factory)

        if config.bundles:
            self.bundle_manager.load_static_bundles(config.bundles)

    def resolve_files(
        self,
        files: Sequence[WebFile],
        pipeline: Optional[PreProcessPipeline] = None,
    ) -> List[WebFile]:
        """Return files in their final order, with conventions applied.

        Args:
            files (list of djbundles.models.WebFile):
                The declared files, in declaration order.

            pipeline (djbundles.processors.pipeline.PreProcessPipeline,
                      optional):
                A pipeline for files that don't specify their own.

        Returns:
            list of djbundles.models.WebFile:
            The resolved files.

        Raises:
            djbundles.errors.CyclicDependencyError:
                The files' dependencies form a cycle.
        """
        return OrderedFileSet(files,
                              file_system=self.file_system,
                              pipeline_factory=self.pipeline_factory,
                              pipeline=pipeline).resolve()


def get_environment() -> BundlesEnvironment:
    """Return the process-wide environment.

    This is built from ``settings.DJBUNDLES`` the first time it's needed, and
    rebuilt after those settings change.

    Returns:
        BundlesEnvironment:
        The environment.

    Raises:
        django.core.exceptions.ImproperlyConfigured:
            The settings were invalid.
    """
    global _environment

    environment = _environment

    if environment is None:
        with _environment_lock:
            environment = _environment

            if environment is None:
                environment = BundlesEnvironment(get_bundles_config())
                _environment = environment

                logger.debug('Built Djbundles environment with %d bundles',
                             len(environment.bundle_manager))

    return environment


def reset_environment() -> None:
    """Reset the process-wide environment.

    It will be rebuilt the next time it's needed.
    """
    global _environment

    with _environment_lock:
        _environment = None


@receiver(setting_changed)
def _on_setting_changed(
    *,
    setting: str,
    **kwargs,
) -> None:
    """Reset the environment when Djbundles-related settings change.

    Args:
        setting (str):
            The name of the setting that changed.

        **kwargs (dict):
            Additional keyword arguments from the signal.
    """
    if setting in (SETTINGS_NAME, 'DEBUG', 'STATIC_ROOT', 'STATIC_URL',
                   'MEDIA_SERIAL'):
        reset_environment()
