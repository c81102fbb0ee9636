"""Cache-busters for generated URLs.

A cache-buster supplies an opaque token that's appended to every generated
URL. Changing the token forces clients to fetch new content and starts a new
epoch for processed files cached on disk.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import uuid4

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

if TYPE_CHECKING:
    from djbundles.settings import BundlesConfig


logger = logging.getLogger(__name__)


#: Characters that separate the parts of a delivery URL, and so can't
#: appear in a cache-buster token.
INVALID_TOKEN_CHARS = ('.', '/')


def is_valid_cache_buster_value(
    value: str,
) -> bool:
    """Return whether a value can be used as a cache-buster token.

    Tokens are appended to delivery URLs after the type tag, and must parse
    back out of them.

    Args:
        value (str):
            The token to check.

    Returns:
        bool:
        ``True`` if the token can be used in URLs.
    """
    return not any(c in value for c in INVALID_TOKEN_CHARS)


class BaseCacheBuster:
    """Base class for a cache-buster.

    Subclasses must implement :py:meth:`get_value`.
    """

    def __init__(
        self,
        config: BundlesConfig,
    ) -> None:
        """Initialize the cache-buster.

        Args:
            config (djbundles.settings.BundlesConfig):
                The Djbundles configuration.
        """
        self.config = config

    def get_value(self) -> str:
        """Return the cache-buster token.

        Returns:
            str:
            The token to append to URLs.
        """
        raise NotImplementedError


class ConfigCacheBuster(BaseCacheBuster):
    """A cache-buster using the configured version.

    This uses ``DJBUNDLES['VERSION']``, falling back on
    :setting:`MEDIA_SERIAL` (as generated by a deployment's media serial
    tooling). Bumping either on deploy invalidates all generated URLs.
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize the cache-buster.

        Args:
            *args (tuple):
                Positional arguments to pass to the parent.

            **kwargs (dict):
                Keyword arguments to pass to the parent.

        Raises:
            django.core.exceptions.ImproperlyConfigured:
                Neither a version nor a media serial is configured, or the
                value contains a period or slash.
        """
        super().__init__(*args, **kwargs)

        value = self.config.version or getattr(settings, 'MEDIA_SERIAL', '')

        if not value:
            raise ImproperlyConfigured(
                'DJBUNDLES["VERSION"] or settings.MEDIA_SERIAL must be set '
                'when using ConfigCacheBuster.')

        value = str(value)

        if not is_valid_cache_buster_value(value):
            raise ImproperlyConfigured(
                'The cache-buster version "%s" must not contain "." or "/".'
                % value)

        self._value = value

    def get_value(self) -> str:
        """Return the configured version.

        Returns:
            str:
            The configured version.
        """
        return self._value


class ProcessLifetimeCacheBuster(BaseCacheBuster):
    """A cache-buster that changes every time the process starts.

    This is mostly useful in development, where every restart should
    produce fresh URLs.
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize the cache-buster.

        Args:
            *args (tuple):
                Positional arguments to pass to the parent.

            **kwargs (dict):
                Keyword arguments to pass to the parent.
        """
        super().__init__(*args, **kwargs)

        self._value = uuid4().hex[:12]

        logger.debug('Using process cache-buster token "%s"', self._value)

    def get_value(self) -> str:
        """Return the token generated for this process.

        Returns:
            str:
            The token.
        """
        return self._value
