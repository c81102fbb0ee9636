"""Data models for web files, bundles, batches, and URLs.

All of these are immutable value objects, apart from
:py:class:`WebFileBatch`, which is built up by the
:py:class:`~djbundles.batching.FileBatcher`.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import (TYPE_CHECKING, Iterator, List, Optional, Sequence,
                    Tuple)

if TYPE_CHECKING:
    from djbundles.processors.pipeline import PreProcessPipeline


class WebFileType(Enum):
    """The type of a web file.

    The values double as the type tags used in delivery URLs.
    """

    #: A JavaScript file.
    SCRIPT = 'js'

    #: A CSS stylesheet.
    STYLE = 'css'

    @property
    def extension(self) -> str:
        """The file extension for this type, including the leading period.

        Type:
            str
        """
        return '.%s' % self.value

    @property
    def mime_type(self) -> str:
        """The MIME type for content of this type.

        Type:
            str
        """
        if self is WebFileType.SCRIPT:
            return 'text/javascript'
        else:
            return 'text/css'

    @classmethod
    def from_tag(
        cls,
        tag: str,
    ) -> Optional[WebFileType]:
        """Return the type for a URL type tag.

        Tags are matched case-insensitively.

        Args:
            tag (str):
                The type tag, such as ``js`` or ``CSS``.

        Returns:
            WebFileType:
            The matching type, or ``None`` if the tag is unknown.
        """
        try:
            return cls(tag.lower())
        except ValueError:
            return None

    @classmethod
    def for_path(
        cls,
        path: str,
    ) -> WebFileType:
        """Return the type implied by a file path's extension.

        Args:
            path (str):
                The file path.

        Returns:
            WebFileType:
            The file type.

        Raises:
            ValueError:
                The path doesn't have a known extension.
        """
        ext = posixpath.splitext(path.split('?', 1)[0])[1]
        file_type = cls.from_tag(ext[1:])

        if file_type is None:
            raise ValueError('Unable to determine the file type for "%s".'
                             % path)

        return file_type


@dataclass(frozen=True)
class WebFile:
    """The identity of a single web asset."""

    #: The path to the file.
    #:
    #: This may be relative to the static media root, application-relative
    #: (starting with ``~/``), absolute, or an external URL.
    file_path: str

    #: The type of the file.
    file_type: WebFileType

    #: The declared priority of the file.
    #:
    #: Lower values are emitted first. Ties are broken by declaration order.
    order: int = 0

    #: Paths of files that must be emitted before this file.
    dependent_files: Tuple[str, ...] = ()

    #: An explicit pipeline to process this file with.
    #:
    #: If ``None``, the default pipeline for the file type is used.
    pipeline: Optional[PreProcessPipeline] = field(default=None,
                                                   compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.dependent_files, tuple):
            object.__setattr__(self, 'dependent_files',
                               tuple(self.dependent_files))

    @classmethod
    def script(
        cls,
        file_path: str,
        **kwargs,
    ) -> WebFile:
        """Return a new JavaScript file.

        Args:
            file_path (str):
                The path to the file.

            **kwargs (dict):
                Additional attributes for the file.

        Returns:
            WebFile:
            The new file.
        """
        return cls(file_path=file_path, file_type=WebFileType.SCRIPT,
                   **kwargs)

    @classmethod
    def style(
        cls,
        file_path: str,
        **kwargs,
    ) -> WebFile:
        """Return a new CSS file.

        Args:
            file_path (str):
                The path to the file.

            **kwargs (dict):
                Additional attributes for the file.

        Returns:
            WebFile:
            The new file.
        """
        return cls(file_path=file_path, file_type=WebFileType.STYLE,
                   **kwargs)

    def with_path(
        self,
        file_path: str,
    ) -> WebFile:
        """Return a copy of this file with a new path.

        Args:
            file_path (str):
                The new path.

        Returns:
            WebFile:
            The new file.
        """
        return replace(self, file_path=file_path)

    def with_pipeline(
        self,
        pipeline: PreProcessPipeline,
    ) -> WebFile:
        """Return a copy of this file with a new pipeline.

        Args:
            pipeline (djbundles.processors.pipeline.PreProcessPipeline):
                The new pipeline.

        Returns:
            WebFile:
            The new file.
        """
        return replace(self, pipeline=pipeline)


@dataclass(frozen=True)
class CacheControlOptions:
    """Options controlling client caching of delivered content."""

    #: Whether to send an ETag header.
    enable_etag: bool = True

    #: The maximum age for the Cache-Control header, in seconds.
    #:
    #: A value of 0 disables Cache-Control, Expires, and Last-Modified.
    max_age: int = 10 * 24 * 60 * 60


@dataclass(frozen=True)
class BundleEnvironmentOptions:
    """Options for a bundle in either debug or production mode."""

    #: The cache control options for the environment.
    cache_control: CacheControlOptions = field(
        default_factory=CacheControlOptions)


def _default_debug_options() -> BundleEnvironmentOptions:
    return BundleEnvironmentOptions(
        cache_control=CacheControlOptions(enable_etag=False,
                                          max_age=0))


@dataclass(frozen=True)
class BundleOptions:
    """Options for a bundle."""

    #: Options used when serving the bundle in debug mode.
    debug: BundleEnvironmentOptions = field(
        default_factory=_default_debug_options)

    #: Options used when serving the bundle in production mode.
    production: BundleEnvironmentOptions = field(
        default_factory=BundleEnvironmentOptions)

    def get_environment_options(
        self,
        debug: bool,
    ) -> BundleEnvironmentOptions:
        """Return the options for debug or production mode.

        Args:
            debug (bool):
                Whether to return the debug options.

        Returns:
            BundleEnvironmentOptions:
            The options for the environment.
        """
        if debug:
            return self.debug
        else:
            return self.production


@dataclass(frozen=True)
class Bundle:
    """A named, ordered collection of web files."""

    #: The unique name of the bundle.
    name: str

    #: The type of files in the bundle.
    file_type: WebFileType

    #: The files in the bundle, in declaration order.
    files: Tuple[WebFile, ...]

    #: The options for the bundle.
    options: BundleOptions = field(default_factory=BundleOptions)

    #: A pipeline to use for files without their own pipeline.
    pipeline: Optional[PreProcessPipeline] = field(default=None,
                                                   compare=False)

    def get_environment_options(
        self,
        debug: bool,
    ) -> BundleEnvironmentOptions:
        """Return the bundle's options for debug or production mode.

        Args:
            debug (bool):
                Whether to return the debug options.

        Returns:
            BundleEnvironmentOptions:
            The options for the environment.
        """
        return self.options.get_environment_options(debug)


@dataclass(frozen=True)
class HashedWebFile:
    """A web file paired with its post-processing identity."""

    #: The web file this was computed from.
    web_file: WebFile

    #: The hash of the file's normalized path and pipeline.
    #:
    #: This is used as the cache key and as the name in composite URLs.
    hash: str

    @property
    def file_path(self) -> str:
        """The hashed path, including the file type's extension.

        Type:
            str
        """
        return '%s%s' % (self.hash, self.web_file.file_type.extension)


class WebFileBatch:
    """An ordered group of files destined for a single composite output.

    An external batch always contains exactly one file.
    """

    ######################
    # Instance variables #
    ######################

    #: Whether this batch holds an externally hosted file.
    is_external: bool

    #: The original and hashed files, in order.
    _entries: List[Tuple[WebFile, Optional[HashedWebFile]]]

    def __init__(self) -> None:
        """Initialize the batch."""
        self.is_external = False
        self._entries = []

    def add_internal(
        self,
        original: WebFile,
        hashed: HashedWebFile,
    ) -> None:
        """Add a locally hosted file to the batch.

        Args:
            original (WebFile):
                The original file.

            hashed (HashedWebFile):
                The hashed version of the file.

        Raises:
            ValueError:
                This batch holds an external file.
        """
        if self.is_external:
            raise ValueError('Local files cannot be added to an external '
                             'batch.')

        self._entries.append((original, hashed))

    def add_external(
        self,
        original: WebFile,
    ) -> None:
        """Add an externally hosted file to an empty batch.

        Args:
            original (WebFile):
                The external file.

        Raises:
            ValueError:
                The batch already contains files.
        """
        if self._entries:
            raise ValueError('External files must be in their own batch.')

        self.is_external = True
        self._entries.append((original, None))

    @property
    def originals(self) -> List[WebFile]:
        """The original files in the batch.

        Type:
            list of WebFile
        """
        return [original for original, hashed in self._entries]

    @property
    def hashed(self) -> List[HashedWebFile]:
        """The hashed files in the batch.

        This is empty for external batches.

        Type:
            list of HashedWebFile
        """
        return [
            hashed
            for original, hashed in self._entries
            if hashed is not None
        ]

    def __iter__(self) -> Iterator[Tuple[WebFile, Optional[HashedWebFile]]]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        return '<WebFileBatch(is_external=%r, files=%r)>' % (
            self.is_external,
            [original.file_path for original in self.originals])


@dataclass(frozen=True)
class FileSetUrl:
    """A URL generated for a set of files."""

    #: The hash identifying the set of files.
    key: str

    #: The generated URL.
    url: str


@dataclass(frozen=True)
class ParsedUrlPath:
    """The decoded form of a bundle or composite delivery URL."""

    #: The name fragments from the URL, in order.
    names: Sequence[str]

    #: The type of content requested.
    web_type: WebFileType

    #: The cache-buster token from the URL.
    version: str

    #: Whether debug mode was requested.
    debug: bool
