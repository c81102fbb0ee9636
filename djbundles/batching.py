"""Batching of ordered files into composite units."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence

from djbundles.hashing import get_web_file_hash
from djbundles.models import HashedWebFile, WebFileBatch

if TYPE_CHECKING:
    from djbundles.filesystem import FileSystemHelper
    from djbundles.hashing import BaseHasher
    from djbundles.models import WebFile
    from djbundles.processors.pipeline import PreProcessPipelineFactory


class FileBatcher:
    """Partitions an ordered list of files into batches.

    Each externally hosted file gets a batch of its own. Every contiguous run
    of local files between them forms a single batch. Batches are returned in
    the same order as the files.

    This doesn't enforce any URL length limit. That happens when URLs are
    built for each batch by :py:class:`~djbundles.url_manager.UrlManager`.
    """

    ######################
    # Instance variables #
    ######################

    #: The helper used to detect external files and normalize paths.
    file_system: FileSystemHelper

    #: The hasher used for file hashes.
    hasher: BaseHasher

    #: The factory providing default pipelines.
    pipeline_factory: PreProcessPipelineFactory

    def __init__(
        self,
        *,
        file_system: FileSystemHelper,
        hasher: BaseHasher,
        pipeline_factory: PreProcessPipelineFactory,
    ) -> None:
        """Initialize the batcher.

        Args:
            file_system (djbundles.filesystem.FileSystemHelper):
                The helper used to detect external files and normalize
                paths.

            hasher (djbundles.hashing.BaseHasher):
                The hasher used for file hashes.

            pipeline_factory (djbundles.processors.pipeline.
                              PreProcessPipelineFactory):
                The factory providing default pipelines, for files without
                one assigned.
        """
        self.file_system = file_system
        self.hasher = hasher
        self.pipeline_factory = pipeline_factory

    def batch(
        self,
        ordered_files: Sequence[WebFile],
    ) -> List[WebFileBatch]:
        """Return the batches for a list of files.

        Args:
            ordered_files (list of djbundles.models.WebFile):
                The files, in their final order.

        Returns:
            list of djbundles.models.WebFileBatch:
            The non-empty batches, in order.
        """
        batches: List[WebFileBatch] = []
        current = WebFileBatch()

        for web_file in ordered_files:
            if self.file_system.is_external_path(web_file.file_path):
                if current:
                    batches.append(current)
                    current = WebFileBatch()

                external = WebFileBatch()
                external.add_external(web_file)
                batches.append(external)
            else:
                current.add_internal(web_file, self.hash_file(web_file))

        if current:
            batches.append(current)

        return batches

    def hash_file(
        self,
        web_file: WebFile,
    ) -> HashedWebFile:
        """Return the hashed form of a local file.

        Args:
            web_file (djbundles.models.WebFile):
                The file.

        Returns:
            djbundles.models.HashedWebFile:
            The hashed file.
        """
        pipeline = self.pipeline_factory.get_for_file(web_file)

        return HashedWebFile(
            web_file=web_file,
            hash=get_web_file_hash(
                self.hasher,
                self.file_system.normalize_web_path(web_file.file_path),
                pipeline.pipeline_id))
