"""HTTP caching header values for delivered content."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Dict, Optional

from django.utils.http import http_date, quote_etag

if TYPE_CHECKING:
    from djbundles.hashing import BaseHasher
    from djbundles.models import CacheControlOptions


def build_etag(
    hasher: BaseHasher,
    *,
    file_key: str,
    compression: str,
    mime_type: str,
) -> str:
    """Return a quoted ETag for delivered content.

    Args:
        hasher (djbundles.hashing.BaseHasher):
            The hasher used to build the ETag.

        file_key (str):
            The key of the bundle or composite file being delivered.

        compression (str):
            The content encoding of the response, or an empty string.

        mime_type (str):
            The MIME type of the response.

    Returns:
        str:
        The quoted ETag.
    """
    return quote_etag(hasher.hash('%s%s%s' % (file_key, compression,
                                              mime_type)))


def build_cache_headers(
    hasher: BaseHasher,
    *,
    cache_control: CacheControlOptions,
    file_key: str,
    mime_type: str,
    compression: str = '',
    last_modified: Optional[float] = None,
    now: Optional[float] = None,
) -> Dict[str, str]:
    """Return the caching headers for delivered content.

    An ``ETag`` is included if enabled in the options. ``Cache-Control``,
    ``Expires`` and ``Last-Modified`` are only included if the options have
    a positive maximum age.

    Args:
        hasher (djbundles.hashing.BaseHasher):
            The hasher used to build the ETag.

        cache_control (djbundles.models.CacheControlOptions):
            The cache control options for the content.

        file_key (str):
            The key of the bundle or composite file being delivered.

        mime_type (str):
            The MIME type of the response.

        compression (str, optional):
            The content encoding of the response.

        last_modified (float, optional):
            The timestamp the content was last modified. This defaults to
            ``now``.

        now (float, optional):
            The current timestamp. This defaults to the current time.

    Returns:
        dict:
        A mapping of header names to values.
    """
    headers: Dict[str, str] = {}

    if cache_control.enable_etag:
        headers['ETag'] = build_etag(hasher,
                                     file_key=file_key,
                                     compression=compression,
                                     mime_type=mime_type)

    if cache_control.max_age > 0:
        if now is None:
            now = time.time()

        if last_modified is None:
            last_modified = now

        headers['Cache-Control'] = 'public, max-age=%d' % cache_control.max_age
        headers['Expires'] = http_date(now + cache_control.max_age)
        headers['Last-Modified'] = http_date(last_modified)

    return headers
