"""Exception classes for Djbundles."""

from __future__ import annotations

from typing import Optional, Sequence

from django.core.exceptions import ImproperlyConfigured


class ItemLookupError(Exception):
    """An error that occurs during item lookup."""


class RegistrationError(Exception):
    """An error that occurs during registration."""


class AlreadyRegisteredError(RegistrationError):
    """An error that occurs during registering the same item."""


class BundleNotFoundError(ItemLookupError):
    """A requested bundle is not registered.

    This is raised when rendering or delivering a bundle by name. It's
    never treated as an empty bundle.
    """

    ######################
    # Instance variables #
    ######################

    #: The name of the bundle that could not be found.
    bundle_name: str

    def __init__(
        self,
        bundle_name: str,
    ) -> None:
        """Initialize the error.

        Args:
            bundle_name (str):
                The name of the bundle that could not be found.
        """
        self.bundle_name = bundle_name

        super().__init__('No bundle has been registered with the name "%s".'
                         % bundle_name)


class UrlLengthExceededError(Exception):
    """A single file's path cannot fit within the maximum URL length.

    This indicates a deployment misconfiguration. Either the file's path
    must be shortened, or the maximum URL length must be increased.
    """

    ######################
    # Instance variables #
    ######################

    #: The path of the file that could not fit.
    file_path: str

    #: The configured maximum URL length.
    max_url_length: int

    def __init__(
        self,
        file_path: str,
        max_url_length: int,
    ) -> None:
        """Initialize the error.

        Args:
            file_path (str):
                The path of the file that could not fit.

            max_url_length (int):
                The configured maximum URL length.
        """
        self.file_path = file_path
        self.max_url_length = max_url_length

        super().__init__(
            'The path for the single dependency "%s" exceeds the maximum '
            'URL length (%s). Either reduce the path length of the '
            'dependency or increase the MAX_URL_LENGTH setting.'
            % (file_path, max_url_length))


class PreProcessError(Exception):
    """A pre-processor failed to transform a file.

    The cached output for the file is left untouched, and a later request
    may retry processing.
    """

    ######################
    # Instance variables #
    ######################

    #: The path of the file that failed to process.
    file_path: str

    #: The ID of the pre-processor that failed.
    processor_id: Optional[str]

    def __init__(
        self,
        file_path: str,
        processor_id: Optional[str] = None,
        reason: str = '',
    ) -> None:
        """Initialize the error.

        Args:
            file_path (str):
                The path of the file that failed to process.

            processor_id (str, optional):
                The ID of the pre-processor that failed, if a specific
                stage failed.

            reason (str, optional):
                A description of the failure.
        """
        self.file_path = file_path
        self.processor_id = processor_id

        if processor_id:
            msg = ('Unable to process "%s" with pre-processor "%s": %s'
                   % (file_path, processor_id, reason))
        else:
            msg = 'Unable to process "%s": %s' % (file_path, reason)

        super().__init__(msg)


class CyclicDependencyError(Exception):
    """Files declare dependencies on each other in a cycle."""

    ######################
    # Instance variables #
    ######################

    #: The paths making up the cycle, in dependency order.
    cycle: Sequence[str]

    def __init__(
        self,
        cycle: Sequence[str],
    ) -> None:
        """Initialize the error.

        Args:
            cycle (list of str):
                The paths making up the cycle, in dependency order.
        """
        self.cycle = list(cycle)

        super().__init__('Files have a cyclic dependency: %s'
                         % ' -> '.join(self.cycle))


class InvalidPipelineError(ImproperlyConfigured):
    """A pipeline was requested with an unknown pre-processor."""
