"""Registries of uniquely identified items.

Registries hold a set of objects that can be looked up by attributes. Each
item is guaranteed to be unique and not share these attributes with any other
item in the registry. Items are populated lazily on first use, from
:py:meth:`Registry.get_defaults`.
"""

from __future__ import annotations

import logging
from enum import Enum
from threading import RLock
from typing import (Dict, Generic, Iterable, Iterator, List, Optional,
                    Sequence, Type, TypeVar)

from django.utils.translation import gettext_lazy as _
from importlib_metadata import EntryPoint, entry_points
from typing_extensions import Final

from djbundles.errors import (AlreadyRegisteredError,
                              ItemLookupError,
                              RegistrationError)


logger = logging.getLogger(__name__)


#: A generic type for items stored in a registry.
RegistryItemType = TypeVar('RegistryItemType')


#: Error code indicating an item is already registered.
ALREADY_REGISTERED: Final[str] = 'already_registered'

#: Error code indicating a lookup attribute value is already registered.
ATTRIBUTE_REGISTERED: Final[str] = 'attribute_registered'

#: Error code indicating a lookup attribute isn't supported by the registry.
INVALID_ATTRIBUTE: Final[str] = 'invalid_attribute'

#: Error code indicating an item is missing a lookup attribute.
MISSING_ATTRIBUTE: Final[str] = 'missing_attribute'

#: Error code indicating an item is not registered when trying to unregister.
UNREGISTER: Final[str] = 'unregister'

#: Error code indicating an item is not registered when looking it up.
NOT_REGISTERED: Final[str] = 'not_registered'

#: Error indicating an error looking up an item via a Python Entry Point.
LOAD_ENTRY_POINT: Final[str] = 'load_entry_point'


#: Default error messages for registries.
DEFAULT_ERRORS: Final[Dict[str, str]] = {
    ALREADY_REGISTERED: _(
        'Could not register %(item)s: it is already registered.'
    ),
    ATTRIBUTE_REGISTERED: _(
        'Could not register %(item)s: another item (%(duplicate)s) is already '
        'registered with %(attr_name)s = %(attr_value)s.'
    ),
    INVALID_ATTRIBUTE: _(
        '"%(attr_name)s" is not a registered lookup attribute.'
    ),
    LOAD_ENTRY_POINT: _(
        'Could not load entry point %(entry_point)s: %(error)s.',
    ),
    MISSING_ATTRIBUTE: _(
        'Could not register %(item)s: it does not have a "%(attr_name)s" '
        'attribute.'
    ),
    UNREGISTER: _(
        'Could not unregister %(item)s: it is not registered.'
    ),
    NOT_REGISTERED: _(
        'No item registered with %(attr_name)s = %(attr_value)s.'
    ),
}


class RegistryState(Enum):
    """The operations state of a registry."""

    #: The registry is pending setup.
    PENDING = 0

    #: The registry is in the process of populating default items.
    POPULATING = 1

    #: The registry is populated and ready to be used.
    READY = 2


class Registry(Generic[RegistryItemType]):
    """An item registry.

    Items are iterated in the order they were registered. All mutations
    happen under a reentrant lock.
    """

    #: The name of the items being registered.
    item_name: Optional[str] = None

    #: A list of attributes that items can be looked up by.
    lookup_attrs: Sequence[str] = []

    #: Error formatting strings for exceptions.
    #:
    #: Entries here override the global :py:data:`DEFAULT_ERRORS` dictionary
    #: for error messages.
    errors: Dict[str, str] = {}

    #: The error class indicating an already registered item.
    already_registered_error_class: Type[AlreadyRegisteredError] = \
        AlreadyRegisteredError

    #: The lookup error exception class.
    lookup_error_class: Type[ItemLookupError] = ItemLookupError

    ######################
    # Instance variables #
    ######################

    #: The current state of the registry.
    state: RegistryState

    #: The registered items, in registration order.
    _items: List[RegistryItemType]

    #: A lock used for population and mutation.
    _lock: RLock

    #: A mapping of lookup attribute names to value-to-item mappings.
    _registry: Dict[str, Dict[object, RegistryItemType]]

    def __init__(self) -> None:
        """Initialize the registry."""
        self.state = RegistryState.PENDING

        self._registry = {
            _attr_name: {}
            for _attr_name in self.lookup_attrs
        }
        self._lock = RLock()
        self._items = []

    def format_error(
        self,
        error_name: str,
        **error_kwargs,
    ) -> str:
        """Format an error message.

        Args:
            error_name (str):
                A symbolic name for the error, such as
                :py:data:`ALREADY_REGISTERED`.

            **error_kwargs (dict):
                The keyword arguments to provide to the error-specific
                formatting string.

        Returns:
            str:
            The formatted error message.

        Raises:
            ValueError:
                A registered error message for ``error_name`` could not be
                found.
        """
        fmt = self.errors.get(error_name, DEFAULT_ERRORS.get(error_name))

        if fmt is None:
            raise ValueError('%s.format_error: Unknown error: "%s".'
                             % (type(self).__name__, error_name))

        return fmt % error_kwargs

    def get(
        self,
        attr_name: str,
        attr_value: object,
    ) -> RegistryItemType:
        """Return an item by its attribute value.

        Args:
            attr_name (str):
                The attribute name to look up an item by.

            attr_value (object):
                The corresponding attribute value.

        Returns:
            object:
            The registered item.

        Raises:
            djbundles.errors.ItemLookupError:
                When a lookup is attempted with an unsupported attribute, or
                the item cannot be found, this exception is raised.
        """
        self.populate()

        try:
            attr_map = self._registry[attr_name]
        except KeyError:
            raise self.lookup_error_class(self.format_error(
                INVALID_ATTRIBUTE, attr_name=attr_name))

        try:
            return attr_map[attr_value]
        except KeyError:
            raise self.lookup_error_class(self.format_error(
                NOT_REGISTERED, attr_name=attr_name, attr_value=attr_value))

    def get_or_none(
        self,
        attr_name: str,
        attr_value: object,
    ) -> Optional[RegistryItemType]:
        """Return the requested registered item, or None if not found.

        Args:
            attr_name (str):
                The attribute name.

            attr_value (object):
                The attribute value.

        Returns:
            object:
            The matching registered item, if found. Otherwise, ``None`` is
            returned.
        """
        try:
            return self.get(attr_name, attr_value)
        except ItemLookupError:
            return None

    def register(
        self,
        item: RegistryItemType,
    ) -> None:
        """Register an item.

        Args:
            item (object):
                The item to register with the class.

        Raises:
            djbundles.errors.RegistrationError:
                Raised if the item is missing one of the required attributes.

            djbundles.errors.AlreadyRegisteredError:
                Raised if the item is already registered or if the item shares
                an attribute name, attribute value pair with another item in
                the registry.
        """
        self.populate()
        attr_values: Dict[str, object] = {}

        with self._lock:
            if item in self._items:
                raise self.already_registered_error_class(self.format_error(
                    ALREADY_REGISTERED,
                    item=item))

            registry_map = self._registry

            for attr_name in self.lookup_attrs:
                attr_map = registry_map[attr_name]

                try:
                    attr_value = getattr(item, attr_name)
                except AttributeError:
                    raise RegistrationError(self.format_error(
                        MISSING_ATTRIBUTE,
                        item=item,
                        attr_name=attr_name))

                if attr_value in attr_map:
                    raise self.already_registered_error_class(
                        self.format_error(ATTRIBUTE_REGISTERED,
                                          item=item,
                                          duplicate=attr_map[attr_value],
                                          attr_name=attr_name,
                                          attr_value=attr_value))

                attr_values[attr_name] = attr_value

            for attr_name, attr_value in attr_values.items():
                registry_map[attr_name][attr_value] = item

            self._items.append(item)

    def unregister(
        self,
        item: RegistryItemType,
    ) -> None:
        """Unregister an item from the registry.

        Args:
            item (object):
                The item to unregister. This must be present in the registry.

        Raises:
            djbundles.errors.ItemLookupError:
                Raised if the item is not found in the registry.
        """
        self.populate()

        with self._lock:
            try:
                self._items.remove(item)
            except ValueError:
                raise self.lookup_error_class(self.format_error(UNREGISTER,
                                                                item=item))

            registry_map = self._registry

            for attr_name in self.lookup_attrs:
                attr_value = getattr(item, attr_name)
                del registry_map[attr_name][attr_value]

    def populate(self) -> None:
        """Ensure the registry is populated.

        Calling this method when the registry is populated will have no effect.
        """
        if self.state == RegistryState.READY:
            return

        with self._lock:
            if self.state != RegistryState.PENDING:
                # This thread is actively populating the registry, or it was
                # populated while waiting for the lock to be released.
                return

            self.state = RegistryState.POPULATING

            try:
                for item in self.get_defaults():
                    self.register(item)
            except Exception:
                self._items = []
                self._registry = {
                    attr_name: {}
                    for attr_name in self.lookup_attrs
                }
                self.state = RegistryState.PENDING
                raise

            self.state = RegistryState.READY

    def get_defaults(self) -> Iterable[RegistryItemType]:
        """Return the default items for the registry.

        This method should be overridden by a subclass.

        Returns:
            list:
            The default items for the registry.
        """
        return []

    def reset(self) -> None:
        """Unregister all items and mark the registry unpopulated.

        Any call to a method that would populate the registry will repopulate
        it.
        """
        with self._lock:
            if self.state == RegistryState.READY:
                for item in list(self._items):
                    self.unregister(item)

                self.state = RegistryState.PENDING

    def __iter__(self) -> Iterator[RegistryItemType]:
        """Iterate through all items in the order they were registered.

        Yields:
            object:
            The items registered in this registry.
        """
        self.populate()

        yield from list(self._items)

    def __len__(self) -> int:
        """Return the number of items in the registry.

        Returns:
            int:
            The number of items in the registry.
        """
        self.populate()

        return len(self._items)

    def __contains__(
        self,
        item: RegistryItemType,
    ) -> bool:
        """Return whether or not the item is contained in the registry.

        Args:
            item (object):
                The item to look for.

        Returns:
            bool:
            Whether or not the item is contained in the registry.
        """
        self.populate()

        return item in self._items


class EntryPointRegistry(Registry[RegistryItemType]):
    """A registry that auto-populates from an entry-point."""

    #: The entry point group name.
    entry_point: Optional[str] = None

    def get_defaults(self) -> Iterable[RegistryItemType]:
        """Yield the values from the entry point.

        Entry points that fail to load are logged and skipped.

        Yields:
            object:
            The object from the entry point.
        """
        if self.entry_point is not None:
            for ep in entry_points(group=self.entry_point):
                try:
                    yield self.process_value_from_entry_point(ep)
                except Exception as e:
                    logger.exception(self.format_error(LOAD_ENTRY_POINT,
                                                       entry_point=ep.name,
                                                       error=e))

    def process_value_from_entry_point(
        self,
        entry_point: EntryPoint,
    ) -> RegistryItemType:
        """Return the item to register from the entry point.

        By default, this returns the loaded entry point.

        Args:
            entry_point (importlib_metadata.EntryPoint):
                The entry point.

        Returns:
            object:
            The processed entry point value.
        """
        return entry_point.load()
