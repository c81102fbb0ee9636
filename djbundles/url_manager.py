"""Generation and parsing of delivery URLs.

Two kinds of URLs are generated:

Bundle URLs:
    ``<url_root><bundle_file_path>/<bundle-name><ext>.<v|d><cache-buster>``

    These reference a named bundle, served as a whole.

Composite URLs:
    ``<url_root><composite_file_path>/<hash>[.<hash>...]<ext>.v<cache-buster>``

    These reference a list of processed files by their hashes. A list of
    files that won't fit within the maximum URL length is split across
    several composite URLs.
"""

from __future__ import annotations

import logging
import posixpath
from typing import TYPE_CHECKING, List, Optional, Sequence
from urllib.parse import quote, unquote

from djbundles.cachebusters import is_valid_cache_buster_value
from djbundles.errors import UrlLengthExceededError
from djbundles.models import FileSetUrl, ParsedUrlPath, WebFileType

if TYPE_CHECKING:
    from djbundles.cachebusters import BaseCacheBuster
    from djbundles.hashing import BaseHasher
    from djbundles.models import HashedWebFile
    from djbundles.settings import BundlesConfig


logger = logging.getLogger(__name__)


#: Extra room reserved in composite URLs for separators.
URL_LENGTH_SLACK = 10

#: Characters left unescaped in bundle names within URLs.
_BUNDLE_NAME_SAFE_CHARS = ":@!$&'()*+,;=~"


def trim_extension(
    file_path: str,
    extension: str,
) -> str:
    """Return a file path without the given extension.

    Args:
        file_path (str):
            The file path.

        extension (str):
            The extension to remove, including the leading period.

    Returns:
        str:
        The path without the extension, or the unchanged path if it doesn't
        end with the extension.
    """
    if extension and file_path.lower().endswith(extension.lower()):
        return file_path[:-len(extension)]

    return file_path


class UrlManager:
    """Builds and parses bundle and composite delivery URLs.

    URL generation is deterministic. The same files, cache-buster and
    configuration always produce the same URLs, split at the same points.
    """

    ######################
    # Instance variables #
    ######################

    #: The Djbundles configuration.
    config: BundlesConfig

    #: The hasher used for composite URL keys.
    hasher: BaseHasher

    def __init__(
        self,
        *,
        config: BundlesConfig,
        hasher: BaseHasher,
    ) -> None:
        """Initialize the URL manager.

        Args:
            config (djbundles.settings.BundlesConfig):
                The Djbundles configuration.

            hasher (djbundles.hashing.BaseHasher):
                The hasher used for composite URL keys.
        """
        self.config = config
        self.hasher = hasher

    def build_bundle_url(
        self,
        bundle_name: str,
        extension: str,
        debug: bool,
        cache_buster: BaseCacheBuster,
    ) -> str:
        """Return the URL for a bundle.

        Args:
            bundle_name (str):
                The name of the bundle.

            extension (str):
                The file extension, including the leading period.

            debug (bool):
                Whether to request the bundle in debug mode.

            cache_buster (djbundles.cachebusters.BaseCacheBuster):
                The cache-buster providing the URL's version token.

        Returns:
            str:
            The bundle URL.

        Raises:
            ValueError:
                The bundle name was empty, ``cache_buster`` was ``None``, or
                its value contained a period or slash.
        """
        cache_buster_value = self._get_cache_buster_value(cache_buster)

        if not bundle_name:
            raise ValueError('bundle_name must not be empty.')

        return '%s%s/%s%s.%s%s' % (
            self.config.url_root,
            self.config.bundle_file_path,
            quote(bundle_name, safe=_BUNDLE_NAME_SAFE_CHARS),
            extension,
            'd' if debug else 'v',
            cache_buster_value)

    def build_composite_urls(
        self,
        files: Sequence[HashedWebFile],
        extension: str,
        cache_buster: BaseCacheBuster,
    ) -> List[FileSetUrl]:
        """Return the composite URLs for a list of files.

        Files are added to a URL in order until the next one would bring it
        to the maximum URL length. That URL is then finished, and a new one
        started with the file that didn't fit.

        Lengths are measured on the escaped form of each name, which is the
        form that appears in the URL.

        Args:
            files (list of djbundles.models.HashedWebFile):
                The hashed files, in order.

            extension (str):
                The file extension, including the leading period.

            cache_buster (djbundles.cachebusters.BaseCacheBuster):
                The cache-buster providing the URLs' version token.

        Returns:
            list of djbundles.models.FileSetUrl:
            The composite URLs, in order. This is empty if there are no
            files.

        Raises:
            ValueError:
                ``cache_buster`` was ``None``, or its value contained a
                period or slash.

            djbundles.errors.UrlLengthExceededError:
                A single file's name can't fit within the maximum URL length
                on its own.
        """
        cache_buster_value = self._get_cache_buster_value(cache_buster)
        max_url_length = self.config.max_url_length
        overhead = (len(self.config.url_root) +
                    len(self.config.composite_file_path) +
                    len(extension) +
                    len(cache_buster_value) +
                    URL_LENGTH_SLACK)

        result: List[FileSetUrl] = []
        names: List[str] = []
        names_len = 0

        for hashed_file in files:
            name = trim_extension(hashed_file.file_path, extension)

            if not name.endswith('.'):
                name += '.'

            name_len = len(quote(name))

            if names_len + name_len + overhead >= max_url_length:
                if not names:
                    raise UrlLengthExceededError(
                        trim_extension(hashed_file.file_path, extension),
                        max_url_length)

                logger.debug('Splitting composite URL after %d files to '
                             'stay within %d characters',
                             len(names), max_url_length)

                result.append(self._build_file_set_url(
                    names, extension, cache_buster_value))
                names = []
                names_len = 0

                # The file that didn't fit starts the next URL, and must
                # fit on its own.
                if name_len + overhead >= max_url_length:
                    raise UrlLengthExceededError(
                        trim_extension(hashed_file.file_path, extension),
                        max_url_length)

            names.append(name)
            names_len += name_len

        if names:
            result.append(self._build_file_set_url(
                names, extension, cache_buster_value))

        return result

    def parse_url(
        self,
        path: str,
    ) -> Optional[ParsedUrlPath]:
        """Parse the file name portion of a delivery URL.

        The name must take the form of
        ``<name>[.<name>...].<type>.<v|d><version>``. This parses
        client-supplied input, so malformed names are never an error.

        Name fragments are unescaped, so a bundle named ``admin/site`` parses
        back from its escaped ``admin%2Fsite`` form. The path must be passed
        without unescaping it first. Bundle names containing a period parse
        as several fragments.

        Args:
            path (str):
                The file name from the URL. Any leading directories are
                ignored.

        Returns:
            djbundles.models.ParsedUrlPath:
            The parsed URL, or ``None`` if the name is malformed.
        """
        parts = posixpath.basename(path).split('.')

        if len(parts) < 3:
            return None

        mode = parts[-1]

        if not mode or mode[0] not in ('v', 'd'):
            return None

        web_type = WebFileType.from_tag(parts[-2])

        if web_type is None:
            return None

        names = parts[:-2]

        if not all(names):
            return None

        return ParsedUrlPath(names=[unquote(name) for name in names],
                             web_type=web_type,
                             version=mode[1:],
                             debug=(mode[0] == 'd'))

    def _build_file_set_url(
        self,
        names: Sequence[str],
        extension: str,
        cache_buster_value: str,
    ) -> FileSetUrl:
        """Return a composite URL for a list of names.

        Args:
            names (list of str):
                The period-terminated names to include.

            extension (str):
                The file extension, including the leading period.

            cache_buster_value (str):
                The cache-buster token.

        Returns:
            djbundles.models.FileSetUrl:
            The composite URL.
        """
        output = ''.join(names).rstrip('.')

        return FileSetUrl(
            key=self.hasher.hash(output),
            url='%s%s/%s%s.v%s' % (self.config.url_root,
                                   self.config.composite_file_path,
                                   quote(output),
                                   extension,
                                   cache_buster_value))

    def _get_cache_buster_value(
        self,
        cache_buster: Optional[BaseCacheBuster],
    ) -> str:
        """Return a cache-buster's token for use in a URL.

        Args:
            cache_buster (djbundles.cachebusters.BaseCacheBuster):
                The cache-buster.

        Returns:
            str:
            The token.

        Raises:
            ValueError:
                ``cache_buster`` was ``None``, or its value contained a
                period or slash.
        """
        if cache_buster is None:
            raise ValueError('cache_buster must be provided.')

        value = cache_buster.get_value()

        if not is_valid_cache_buster_value(value):
            raise ValueError(
                'The cache-buster value "%s" must not contain "." or "/".'
                % value)

        return value
