"""Resolution of the processing order of web files."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Set

from djbundles.errors import CyclicDependencyError
from djbundles.models import WebFile

if TYPE_CHECKING:
    from djbundles.filesystem import FileSystemHelper
    from djbundles.processors.pipeline import (PreProcessPipeline,
                                               PreProcessPipelineFactory)


logger = logging.getLogger(__name__)


class OrderedFileSet:
    """Resolves the final order and paths of a set of declared files.

    Files are sorted by their declared :py:attr:`~djbundles.models.WebFile.
    order`, with ties kept in declaration order. Any file a file depends on
    is placed before it. Dependencies that weren't declared themselves are
    added with the same type as the file depending on them.

    Once ordered, the configured naming conventions are applied to each
    path, duplicates are removed, and every file is assigned the pipeline
    that will process it.
    """

    ######################
    # Instance variables #
    ######################

    #: The declared files, in declaration order.
    files: Sequence[WebFile]

    #: The helper used to normalize paths and check for files on disk.
    file_system: FileSystemHelper

    #: A pipeline for files that don't specify their own.
    pipeline: Optional[PreProcessPipeline]

    #: The factory providing conventions and default pipelines.
    pipeline_factory: PreProcessPipelineFactory

    def __init__(
        self,
        files: Sequence[WebFile],
        *,
        file_system: FileSystemHelper,
        pipeline_factory: PreProcessPipelineFactory,
        pipeline: Optional[PreProcessPipeline] = None,
    ) -> None:
        """Initialize the file set.

        Args:
            files (list of djbundles.models.WebFile):
                The declared files, in declaration order.

            file_system (djbundles.filesystem.FileSystemHelper):
                The helper used to normalize paths and check for files on
                disk.

            pipeline_factory (djbundles.processors.pipeline.
                              PreProcessPipelineFactory):
                The factory providing conventions and default pipelines.

            pipeline (djbundles.processors.pipeline.PreProcessPipeline,
                      optional):
                A pipeline for files that don't specify their own. If not
                provided, the default pipeline for each file's type is used.
        """
        self.files = files
        self.file_system = file_system
        self.pipeline_factory = pipeline_factory
        self.pipeline = pipeline

    def resolve(self) -> List[WebFile]:
        """Return the files in their final processing order.

        Returns:
            list of djbundles.models.WebFile:
            The files, with conventions applied and pipelines assigned.

        Raises:
            djbundles.errors.CyclicDependencyError:
                The files' dependencies form a cycle.
        """
        ordered = self._order_files()
        result: List[WebFile] = []
        seen: Set[str] = set()

        for web_file in ordered:
            web_file = self._apply_conventions(web_file)
            key = self.file_system.normalize_web_path(web_file.file_path)

            if key in seen:
                continue

            seen.add(key)

            if web_file.pipeline is None:
                if self.pipeline is not None:
                    web_file = web_file.with_pipeline(self.pipeline)
                else:
                    web_file = web_file.with_pipeline(
                        self.pipeline_factory.get_default(web_file.file_type))

            result.append(web_file)

        return result

    def _order_files(self) -> List[WebFile]:
        """Return the declared files sorted and dependency-ordered.

        This performs a depth-first walk over each file's dependencies,
        tracking the files on the current path so that cycles can be
        reported.

        Returns:
            list of djbundles.models.WebFile:
            The ordered files.

        Raises:
            djbundles.errors.CyclicDependencyError:
                The files' dependencies form a cycle.
        """
        normalize = self.file_system.normalize_web_path
        by_key: Dict[str, WebFile] = {}

        for web_file in self.files:
            by_key.setdefault(normalize(web_file.file_path), web_file)

        sorted_files = [
            web_file
            for i, web_file in sorted(enumerate(self.files),
                                      key=lambda pair: (pair[1].order,
                                                        pair[0]))
        ]

        result: List[WebFile] = []
        done: Set[str] = set()
        stack: List[str] = []

        def _visit(web_file: WebFile) -> None:
            key = normalize(web_file.file_path)

            if key in done:
                return

            if key in stack:
                cycle = stack[stack.index(key):] + [key]

                raise CyclicDependencyError(cycle)

            stack.append(key)

            for dep_path in web_file.dependent_files:
                dep_file = by_key.get(normalize(dep_path))

                if dep_file is None:
                    logger.debug('Adding undeclared dependency "%s" of "%s"',
                                 dep_path, web_file.file_path)

                    dep_file = WebFile(file_path=dep_path,
                                       file_type=web_file.file_type)
                    by_key[normalize(dep_path)] = dep_file

                _visit(dep_file)

            stack.pop()
            done.add(key)
            result.append(web_file)

        for web_file in sorted_files:
            _visit(web_file)

        return result

    def _apply_conventions(
        self,
        web_file: WebFile,
    ) -> WebFile:
        """Return a file with all conventions applied to its path.

        Args:
            web_file (djbundles.models.WebFile):
                The file.

        Returns:
            djbundles.models.WebFile:
            The file, or a copy with a new path.
        """
        file_path = web_file.file_path

        for convention in self.pipeline_factory.conventions:
            file_path = convention.process_path(file_path, self.file_system)

        if file_path != web_file.file_path:
            web_file = web_file.with_path(file_path)

        return web_file
