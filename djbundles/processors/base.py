"""Base support for pre-processors.

A pre-processor is a single named transformation stage applied to the text of
a web file. Stages are chained together into a
:py:class:`~djbundles.processors.pipeline.PreProcessPipeline`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from djbundles.filesystem import FileSystemHelper
    from djbundles.models import WebFile
    from djbundles.settings import BundlesConfig


@dataclass(frozen=True)
class FileProcessContext:
    """The input to a pre-processor stage."""

    #: The web file being processed.
    web_file: WebFile

    #: The normalized web path of the file.
    web_path: str

    #: The current text of the file.
    #:
    #: This is the output of the previous stage, or the file's content on
    #: disk for the first stage.
    file_content: str


class BasePreProcessor:
    """Base class for a pre-processor stage.

    Subclasses must set :py:attr:`processor_id` and implement
    :py:meth:`process`.

    Every call to :py:meth:`process` may suspend (for instance, to read
    imported files or to run a minifier in a worker thread). Stages must not
    keep per-file state, since the same instance serves concurrent requests.
    """

    #: The unique ID of the pre-processor.
    #:
    #: This is used to build pipelines by name, and forms part of the cache
    #: key for processed files.
    processor_id: Optional[str] = None

    def __init__(
        self,
        *,
        config: BundlesConfig,
        file_system: FileSystemHelper,
    ) -> None:
        """Initialize the pre-processor.

        Args:
            config (djbundles.settings.BundlesConfig):
                The Djbundles configuration.

            file_system (djbundles.filesystem.FileSystemHelper):
                The helper used to read files.
        """
        self.config = config
        self.file_system = file_system

    async def process(
        self,
        context: FileProcessContext,
    ) -> str:
        """Transform the text of a file.

        Args:
            context (FileProcessContext):
                The file and its current text.

        Returns:
            str:
            The transformed text.

        Raises:
            Exception:
                The file could not be transformed. The pipeline reports this
                as a :py:class:`~djbundles.errors.PreProcessError`.
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return '<%s(processor_id=%r)>' % (type(self).__name__,
                                          self.processor_id)
