"""Utilities and constants for configuring Djbundles.

Note:
    :py:func:`build_bundles_settings` is safe to import from a project's
    :file:`settings.py` without side effects (for instance, it will not load
    any Django models or apps).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from djbundles.cachebusters import is_valid_cache_buster_value

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from typing import Any

    from djbundles.bundles import StaticBundle


logger = logging.getLogger(__name__)


#: The name of the Django setting holding Djbundles configuration.
SETTINGS_NAME = 'DJBUNDLES'

#: The default cache-buster class.
DEFAULT_CACHE_BUSTER = 'djbundles.cachebusters.ConfigCacheBuster'

#: The default hasher class.
DEFAULT_HASHER = 'djbundles.hashing.Crc32Hasher'

#: The default list of file processing conventions.
DEFAULT_CONVENTIONS: list[str] = [
    'djbundles.conventions.MinifiedFilePathConvention',
]

#: The default maximum length of a generated URL.
DEFAULT_MAX_URL_LENGTH = 2048


@dataclass(frozen=True)
class BundlesConfig:
    """Validated Djbundles configuration.

    This is built from ``settings.DJBUNDLES`` by
    :py:func:`get_bundles_config`.
    """

    #: The root URL that bundle and composite paths live under.
    url_root: str

    #: The path under :py:attr:`url_root` for bundle URLs.
    bundle_file_path: str

    #: The path under :py:attr:`url_root` for composite URLs.
    composite_file_path: str

    #: The maximum length of a generated composite URL.
    max_url_length: int

    #: The directory storing processed files.
    cache_dir: str

    #: The version used by the configuration-based cache-buster.
    version: str

    #: The import path of the cache-buster class.
    cache_buster: str

    #: The import path of the hasher class.
    hasher: str

    #: The base URL of the site, used to rewrite relative CSS URLs.
    site_base_url: str

    #: The directory containing static media.
    static_root: str

    #: The URL prefix for static media.
    static_url: str

    #: Import paths of file processing conventions, in order.
    conventions: Sequence[str]

    #: Import paths of additional pre-processors.
    preprocessors: Sequence[str]

    #: Whether to render bundles in debug mode by default.
    debug: bool

    #: Static bundle declarations.
    bundles: Mapping[str, StaticBundle]


def build_bundles_settings(
    *,
    cache_dir: str,
    version: str = '',
    url_root: str = '/',
    bundle_file_path: str = 'sb',
    composite_file_path: str = 'sc',
    max_url_length: int = DEFAULT_MAX_URL_LENGTH,
    cache_buster: str = DEFAULT_CACHE_BUSTER,
    hasher: str = DEFAULT_HASHER,
    site_base_url: str = 'http://localhost/',
    conventions: Sequence[str] = DEFAULT_CONVENTIONS,
    preprocessors: (Sequence[str] | None) = None,
    bundles: (Mapping[str, StaticBundle] | None) = None,
    extra_config: (Mapping[str, Any] | None) = None,
) -> dict[str, Any]:
    """Build a standard set of Djbundles settings.

    This can be used to create a ``DJBUNDLES`` settings dictionary in a
    :file:`settings.py` file.

    Args:
        cache_dir (str):
            The directory that processed files will be cached in. This must
            be writable by the server.

        version (str, optional):
            The version token used by
            :py:class:`~djbundles.cachebusters.ConfigCacheBuster`. Bump this
            on deploy. This must not contain "." or "/", since
            it's appended to delivery URLs.

        url_root (str, optional):
            The root URL that bundle and composite URLs are served from.

        bundle_file_path (str, optional):
            The path under ``url_root`` for bundle URLs.

        composite_file_path (str, optional):
            The path under ``url_root`` for composite URLs.

        max_url_length (int, optional):
            The maximum length of generated composite URLs. File lists that
            don't fit are split across multiple URLs.

        cache_buster (str, optional):
            The import path of the cache-buster class.

        hasher (str, optional):
            The import path of the hasher class.

        site_base_url (str, optional):
            The base URL of the site, used to rewrite relative URLs in CSS.

        conventions (list of str, optional):
            Import paths of file processing conventions to apply, in order.

        preprocessors (list of str, optional):
            Import paths of additional pre-processors to make available
            to pipelines.

        bundles (dict, optional):
            Static bundle declarations, mapping bundle names to
            :py:class:`~djbundles.bundles.StaticBundle` dictionaries.

        extra_config (dict, optional):
            Additional configuration to merge into the resulting dictionary.

    Returns:
        dict:
        The Djbundles configuration dictionary.
    """
    config: dict[str, Any] = {
        'CACHE_DIR': cache_dir,
        'VERSION': version,
        'URL_ROOT': url_root,
        'BUNDLE_FILE_PATH': bundle_file_path,
        'COMPOSITE_FILE_PATH': composite_file_path,
        'MAX_URL_LENGTH': max_url_length,
        'CACHE_BUSTER': cache_buster,
        'HASHER': hasher,
        'SITE_BASE_URL': site_base_url,
        'CONVENTIONS': list(conventions),
        'PREPROCESSORS': list(preprocessors or []),
        'BUNDLES': dict(bundles or {}),
    }

    if extra_config:
        config.update(extra_config)

    return config


def get_bundles_config() -> BundlesConfig:
    """Return the validated Djbundles configuration.

    Returns:
        BundlesConfig:
        The configuration.

    Raises:
        django.core.exceptions.ImproperlyConfigured:
            The configuration is missing required values or contains invalid
            values.
    """
    raw: Mapping[str, Any] = getattr(settings, SETTINGS_NAME, None) or {}

    cache_dir = raw.get('CACHE_DIR')

    if not cache_dir:
        raise ImproperlyConfigured(
            '%s["CACHE_DIR"] must be set to a writable directory.'
            % SETTINGS_NAME)

    try:
        max_url_length = int(raw.get('MAX_URL_LENGTH',
                                     DEFAULT_MAX_URL_LENGTH))
    except (TypeError, ValueError):
        max_url_length = 0

    if max_url_length <= 0:
        raise ImproperlyConfigured(
            '%s["MAX_URL_LENGTH"] must be a positive integer.'
            % SETTINGS_NAME)

    version = str(raw.get('VERSION', ''))

    if not is_valid_cache_buster_value(version):
        raise ImproperlyConfigured(
            '%s["VERSION"] must not contain "." or "/" (got "%s").'
            % (SETTINGS_NAME, version))

    url_root = raw.get('URL_ROOT', '/')

    if not url_root.endswith('/'):
        url_root += '/'

    static_url = raw.get('STATIC_URL', getattr(settings, 'STATIC_URL', None))

    if not static_url:
        static_url = '/'
    elif not static_url.endswith('/'):
        static_url += '/'

    return BundlesConfig(
        url_root=url_root,
        bundle_file_path=raw.get('BUNDLE_FILE_PATH', 'sb').strip('/'),
        composite_file_path=raw.get('COMPOSITE_FILE_PATH', 'sc').strip('/'),
        max_url_length=max_url_length,
        cache_dir=cache_dir,
        version=version,
        cache_buster=raw.get('CACHE_BUSTER', DEFAULT_CACHE_BUSTER),
        hasher=raw.get('HASHER', DEFAULT_HASHER),
        site_base_url=raw.get('SITE_BASE_URL', 'http://localhost/'),
        static_root=(raw.get('STATIC_ROOT') or
                     getattr(settings, 'STATIC_ROOT', None) or
                     ''),
        static_url=static_url,
        conventions=tuple(raw.get('CONVENTIONS', DEFAULT_CONVENTIONS)),
        preprocessors=tuple(raw.get('PREPROCESSORS', [])),
        debug=bool(raw.get('DEBUG', settings.DEBUG)),
        bundles=dict(raw.get('BUNDLES', {})))
