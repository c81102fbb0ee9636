"""Registry of available pre-processors."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Type

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from djbundles.processors.css import (CssImportProcessor,
                                      CssMinifier,
                                      CssUrlProcessor)
from djbundles.processors.js import JsMinifier
from djbundles.registries import EntryPointRegistry

if TYPE_CHECKING:
    from importlib_metadata import EntryPoint

    from djbundles.filesystem import FileSystemHelper
    from djbundles.processors.base import BasePreProcessor
    from djbundles.settings import BundlesConfig


logger = logging.getLogger(__name__)


#: The pre-processor classes that are always available.
BUILTIN_PREPROCESSORS: list[Type[BasePreProcessor]] = [
    CssImportProcessor,
    CssUrlProcessor,
    CssMinifier,
    JsMinifier,
]


class PreProcessorRegistry(EntryPointRegistry['BasePreProcessor']):
    """A registry of pre-processor instances, looked up by ID.

    This is populated with the built-in pre-processors, any registered
    through the ``djbundles.preprocessors`` Python entry point group, and any
    listed in ``DJBUNDLES['PREPROCESSORS']``.
    """

    entry_point = 'djbundles.preprocessors'
    item_name = 'pre-processor'
    lookup_attrs = ('processor_id',)

    def __init__(
        self,
        *,
        config: BundlesConfig,
        file_system: FileSystemHelper,
    ) -> None:
        """Initialize the registry.

        Args:
            config (djbundles.settings.BundlesConfig):
                The Djbundles configuration, passed to each pre-processor.

            file_system (djbundles.filesystem.FileSystemHelper):
                The file system helper, passed to each pre-processor.
        """
        self.config = config
        self.file_system = file_system

        super().__init__()

    def get_defaults(self) -> Iterable[BasePreProcessor]:
        """Yield the default pre-processors.

        Yields:
            djbundles.processors.base.BasePreProcessor:
            Each pre-processor instance.

        Raises:
            django.core.exceptions.ImproperlyConfigured:
                A configured pre-processor could not be imported.
        """
        for processor_cls in BUILTIN_PREPROCESSORS:
            yield self._create(processor_cls)

        yield from super().get_defaults()

        for class_path in self.config.preprocessors:
            try:
                processor_cls = import_string(class_path)
            except ImportError as e:
                raise ImproperlyConfigured(
                    'Unable to import pre-processor "%s": %s'
                    % (class_path, e))

            yield self._create(processor_cls)

    def process_value_from_entry_point(
        self,
        entry_point: EntryPoint,
    ) -> BasePreProcessor:
        """Return a pre-processor instance from an entry point.

        Args:
            entry_point (importlib_metadata.EntryPoint):
                The entry point referencing a pre-processor class.

        Returns:
            djbundles.processors.base.BasePreProcessor:
            The pre-processor instance.
        """
        return self._create(entry_point.load())

    def get_processor(
        self,
        processor_id: str,
    ) -> BasePreProcessor:
        """Return a pre-processor by ID.

        Args:
            processor_id (str):
                The ID of the pre-processor.

        Returns:
            djbundles.processors.base.BasePreProcessor:
            The pre-processor.

        Raises:
            djbundles.errors.ItemLookupError:
                No pre-processor is registered with this ID.
        """
        return self.get('processor_id', processor_id)

    def _create(
        self,
        processor_cls: Type[BasePreProcessor],
    ) -> BasePreProcessor:
        logger.debug('Loading pre-processor %r', processor_cls)

        return processor_cls(config=self.config,
                             file_system=self.file_system)


__all__ = [
    'BUILTIN_PREPROCESSORS',
    'PreProcessorRegistry',
]
