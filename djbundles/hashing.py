"""Short, stable digests used for cache keys, composite URLs, and ETags.

Hashers must produce the same digest for the same input across process
restarts, since digests end up in URLs cached by clients and in the names of
files cached on disk.
"""

from __future__ import annotations

import hashlib
import zlib


class BaseHasher:
    """Base class for a hasher.

    Subclasses must implement :py:meth:`hash`.
    """

    def hash(
        self,
        value: str,
    ) -> str:
        """Return a short digest for a string.

        Args:
            value (str):
                The string to hash.

        Returns:
            str:
            The digest.
        """
        raise NotImplementedError


class Crc32Hasher(BaseHasher):
    """A hasher producing 8-character CRC32 digests.

    This is the default hasher. Digests are short enough to keep composite
    URLs compact.
    """

    def hash(
        self,
        value: str,
    ) -> str:
        """Return a CRC32 digest for a string.

        Args:
            value (str):
                The string to hash.

        Returns:
            str:
            The 8-character hexadecimal digest.
        """
        return '%08x' % (zlib.crc32(value.encode('utf-8')) & 0xFFFFFFFF)


class SHA256Hasher(BaseHasher):
    """A hasher producing truncated SHA256 digests.

    This trades URL length for a lower chance of collisions.
    """

    #: The number of hexadecimal characters to keep.
    digest_length: int = 16

    def hash(
        self,
        value: str,
    ) -> str:
        """Return a truncated SHA256 digest for a string.

        Args:
            value (str):
                The string to hash.

        Returns:
            str:
            The truncated hexadecimal digest.
        """
        return (
            hashlib.sha256(value.encode('utf-8'))
            .hexdigest()[:self.digest_length]
        )


def get_web_file_hash(
    hasher: BaseHasher,
    web_path: str,
    pipeline_id: str,
) -> str:
    """Return the hash identifying a processed web file.

    The hash covers both the normalized web path and the pipeline used to
    process the file, so that the same file processed by two pipelines is
    cached separately.

    Args:
        hasher (BaseHasher):
            The hasher to use.

        web_path (str):
            The normalized web path of the file.

        pipeline_id (str):
            The identity of the pipeline processing the file.

    Returns:
        str:
        The file hash.
    """
    return hasher.hash('%s|%s' % (web_path, pipeline_id))
