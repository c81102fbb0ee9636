"""Pre-processing pipelines."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Sequence, Tuple

from djbundles.errors import (InvalidPipelineError,
                              ItemLookupError,
                              PreProcessError)
from djbundles.models import WebFileType
from djbundles.processors.base import FileProcessContext

if TYPE_CHECKING:
    from djbundles.conventions import BaseFileProcessingConvention
    from djbundles.models import WebFile
    from djbundles.processors.base import BasePreProcessor
    from djbundles.processors.registry import PreProcessorRegistry


logger = logging.getLogger(__name__)


#: The processor IDs making up the default pipeline for each file type.
DEFAULT_PIPELINES: Dict[WebFileType, Tuple[str, ...]] = {
    WebFileType.SCRIPT: ('js-min',),
    WebFileType.STYLE: ('css-import', 'css-url', 'css-min'),
}


class PreProcessPipeline:
    """An ordered sequence of pre-processors run over a file.

    Each stage receives the previous stage's output. The first stage to
    fail aborts the pipeline for that file.
    """

    ######################
    # Instance variables #
    ######################

    #: The pre-processors, in the order they run.
    processors: Tuple[BasePreProcessor, ...]

    def __init__(
        self,
        processors: Sequence[BasePreProcessor],
    ) -> None:
        """Initialize the pipeline.

        Args:
            processors (list of djbundles.processors.base.BasePreProcessor):
                The pre-processors, in the order they run.
        """
        self.processors = tuple(processors)

    @property
    def pipeline_id(self) -> str:
        """The identity of the pipeline's stage sequence.

        Type:
            str
        """
        return ','.join(
            processor.processor_id or type(processor).__name__
            for processor in self.processors
        )

    async def process_file(
        self,
        *,
        web_file: WebFile,
        web_path: str,
        content: str,
    ) -> str:
        """Run the pipeline over a file's content.

        Args:
            web_file (djbundles.models.WebFile):
                The file being processed.

            web_path (str):
                The normalized web path of the file.

            content (str):
                The content of the file.

        Returns:
            str:
            The processed content.

        Raises:
            djbundles.errors.PreProcessError:
                A stage failed to process the file.
        """
        for processor in self.processors:
            context = FileProcessContext(web_file=web_file,
                                         web_path=web_path,
                                         file_content=content)

            try:
                content = await processor.process(context)
            except Exception as e:
                logger.exception('Pre-processor "%s" failed on "%s": %s',
                                 processor.processor_id, web_path, e)

                raise PreProcessError(web_path,
                                      processor_id=processor.processor_id,
                                      reason=str(e)) from e

        return content

    def __len__(self) -> int:
        return len(self.processors)

    def __eq__(
        self,
        other: object,
    ) -> bool:
        return (isinstance(other, PreProcessPipeline) and
                self.processors == other.processors)

    def __hash__(self) -> int:
        return hash(self.processors)

    def __repr__(self) -> str:
        return '<PreProcessPipeline(%s)>' % self.pipeline_id


class PreProcessPipelineFactory:
    """Builds pre-processing pipelines.

    This resolves the default pipeline for a file type, or builds a pipeline
    from an explicit list of pre-processor IDs. It also holds the file
    processing conventions applied when ordering files.
    """

    ######################
    # Instance variables #
    ######################

    #: The conventions applied to file paths, in order.
    conventions: Tuple[BaseFileProcessingConvention, ...]

    #: The registry of available pre-processors.
    registry: PreProcessorRegistry

    def __init__(
        self,
        registry: PreProcessorRegistry,
        conventions: Sequence[BaseFileProcessingConvention] = (),
    ) -> None:
        """Initialize the factory.

        Args:
            registry (djbundles.processors.registry.PreProcessorRegistry):
                The registry of available pre-processors.

            conventions (list of
                         djbundles.conventions.BaseFileProcessingConvention,
                         optional):
                The conventions applied to file paths, in order.
        """
        self.registry = registry
        self.conventions = tuple(conventions)
        self._defaults: Dict[WebFileType, PreProcessPipeline] = {}

    def get_pipeline(
        self,
        *processor_ids: str,
    ) -> PreProcessPipeline:
        """Return a pipeline with the given pre-processors in order.

        Args:
            *processor_ids (tuple of str):
                The IDs of the pre-processors, in the order they run.

        Returns:
            PreProcessPipeline:
            The pipeline.

        Raises:
            djbundles.errors.InvalidPipelineError:
                One of the pre-processor IDs is not registered.
        """
        processors = []

        for processor_id in processor_ids:
            try:
                processors.append(self.registry.get_processor(processor_id))
            except ItemLookupError:
                raise InvalidPipelineError(
                    'Unknown pre-processor "%s" requested for a pipeline.'
                    % processor_id)

        return PreProcessPipeline(processors)

    def get_default(
        self,
        file_type: WebFileType,
    ) -> PreProcessPipeline:
        """Return the default pipeline for a file type.

        Args:
            file_type (djbundles.models.WebFileType):
                The file type.

        Returns:
            PreProcessPipeline:
            The default pipeline.
        """
        try:
            return self._defaults[file_type]
        except KeyError:
            pipeline = self.get_pipeline(*DEFAULT_PIPELINES[file_type])
            self._defaults[file_type] = pipeline

            return pipeline

    def get_for_file(
        self,
        web_file: WebFile,
    ) -> PreProcessPipeline:
        """Return the pipeline that processes a file.

        An empty pipeline assigned to a file is honored. It is not replaced
        with the default.

        Args:
            web_file (djbundles.models.WebFile):
                The file.

        Returns:
            PreProcessPipeline:
            The file's own pipeline, or the default for its type.
        """
        if web_file.pipeline is not None:
            return web_file.pipeline

        return self.get_default(web_file.file_type)
