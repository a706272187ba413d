"""PropConf configuration object module."""

from __future__ import annotations

import logging
import threading
import weakref
from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .accessor import ConfigAccessor, ConfigAccessorBuilder, ConfigSnapshot
from .converters import Converter, ConverterRegistry, is_optional_number
from .exceptions import NotFoundError, format_type
from .interpolation import InterpolationEngine
from .sources import ConfigSource, Subscription
from .utils import check_separator

logger = logging.getLogger(__name__)

# Property read from the sources when no expansion default is given
EVALUATE_VARIABLES_PROPERTY = "propconf.evaluate-variables"

# Minimum number of accessor map entries before released names are swept
ACCESSOR_SWEEP_SIZE = 64


class PropConfig:
    """Typed view over an ordered list of configuration sources.

    The first source defining a property wins. Values are optionally expanded
    (${name} and ${name:default}) and then converted to the requested type.
    """

    def __init__(
        self,
        sources: Sequence[ConfigSource],
        converters: Optional[Dict[Any, Converter]] = None,
        evaluate_variables: Optional[bool] = None,
        separator: str = ",",
    ):
        """Initialize configuration object.

        Args:
            sources: Sources in priority order  # (first one wins)
            converters: Explicit converters merged over the built-in set  # (type -> converter)
            evaluate_variables: Default for variable expansion, None reads the
                propconf.evaluate-variables property from the sources
            separator: Single character separating the elements of collection values

        Raises:
            ValueError: If the separator is not exactly one character
        """
        self._sources: Tuple[ConfigSource, ...] = tuple(sources)
        self.separator = check_separator(separator)
        self.converters = ConverterRegistry(converters)
        self._interpolation = InterpolationEngine(self._get_raw_value)

        # Property name -> accessors bound to it
        self._accessors: Dict[str, weakref.WeakSet] = defaultdict(weakref.WeakSet)
        self._accessors_lock = threading.Lock()
        self._accessors_sweep_size = ACCESSOR_SWEEP_SIZE

        self._subscriptions_lock = threading.Lock()
        self._subscriptions: List[Subscription] = [
            source.on_change(self._invalidate_accessors) for source in self._sources
        ]

        if evaluate_variables is None:
            evaluate_variables = bool(self.get_optional_value(EVALUATE_VARIABLES_PROPERTY, bool, False))
        self.evaluate_variables = evaluate_variables

    @property
    def config_sources(self) -> Tuple[ConfigSource, ...]:
        return self._sources

    def get_value(self, name: str, target_type: Any = str, evaluate_variables: Optional[bool] = None) -> Any:
        """Get a required property.

        Args:
            name: Property name
            target_type: Scalar type or collection descriptor like list[int]
            evaluate_variables: Expand ${...} references, None follows the configuration

        Returns:
            Converted value  # (an empty value for OptionalInt and friends when undefined)

        Raises:
            NotFoundError: If no source defines the property
            ExpansionError: If a referenced variable is undefined and has no default
            ConversionError: If the value is malformed for the type
            NoConverterError: If no converter exists for the type
        """
        raw_value = self._get_raw_value(name)
        if raw_value is None:
            if is_optional_number(target_type):
                return target_type.empty()
            raise NotFoundError(name)
        return self._convert_raw_value(raw_value, target_type, evaluate_variables)

    def get_optional_value(
        self, name: str, target_type: Any = str, evaluate_variables: Optional[bool] = None
    ) -> Optional[Any]:
        """Get a property on a best-effort basis.

        Empty values count as undefined. Any failure while expanding or
        converting is logged and reported as an undefined property.

        Args:
            name: Property name
            target_type: Scalar type or collection descriptor like list[int]
            evaluate_variables: Expand ${...} references, None follows the configuration

        Returns:
            Converted value, or None
        """
        for source in self._sources:
            raw_value = source.get_value(name)
            # Treat empty value as undefined
            if raw_value:
                try:
                    return self._convert_raw_value(raw_value, target_type, evaluate_variables)
                except Exception as e:
                    logger.debug("Ignoring property %r as %s: %s", name, format_type(target_type), e)
                    return None
        return None

    def get_values(
        self,
        name: str,
        item_type: Any = str,
        collection_type: Callable[[Iterable[Any]], Any] = list,
        evaluate_variables: Optional[bool] = None,
    ) -> Any:
        """Get a multi-valued property.

        Args:
            name: Property name
            item_type: Type of each element
            collection_type: Collection to build  # (list, tuple, set, frozenset, ...)
            evaluate_variables: Expand ${...} references, None follows the configuration

        Returns:
            Collection of converted elements  # (empty when no source defines the property)

        Raises:
            ConversionError: If an element is malformed for the type
            NoConverterError: If no converter exists for the element type
        """
        raw_value = self._get_raw_value(name)
        if raw_value is None:
            return collection_type(())
        if self._should_expand(evaluate_variables):
            raw_value = self._interpolation.expand(raw_value)
        return self.converters.convert_many(raw_value, item_type, collection_type, self.separator)

    def get_property_names(self) -> Set[str]:
        """Return the names defined by any source."""
        names = set()  # Set[str] (union over all sources)
        for source in self._sources:
            names.update(source.get_property_names())
        return names

    def convert(self, value: Optional[str], target_type: Any) -> Any:
        """Convert a raw string with the registered converters."""
        return self.converters.convert(value, target_type, self.separator)

    def get_converter(self, target_type: Any) -> Converter:
        return self.converters.get(target_type)

    def access(self, name: str, target_type: Any = str) -> ConfigAccessorBuilder:
        """Start building a cached, change-aware accessor for a property."""
        return ConfigAccessorBuilder(self, name, target_type)

    def snapshot_for(self, *accessors: ConfigAccessor) -> ConfigSnapshot:
        """Capture the current values of several accessors together."""
        return ConfigSnapshot({accessor: accessor.get_value() for accessor in accessors})

    def close(self) -> None:
        """Unregister from all sources. Safe to call more than once."""
        with self._subscriptions_lock:
            subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.close()
        if subscriptions:
            logger.debug("Closed %d source subscriptions", len(subscriptions))

    def __enter__(self) -> PropConfig:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __getitem__(self, name: str) -> str:
        """Dict-style getter of a required string property."""
        return self.get_value(name)

    def __contains__(self, name: str) -> bool:
        """Dict-style contains check, True if any source defines the property."""
        return self._get_raw_value(name) is not None

    def get(self, name: str, default: Any = None, target_type: Any = str) -> Any:
        """Dict-style get with default."""
        value = self.get_optional_value(name, target_type)
        return default if value is None else value

    def _register_accessor(self, name: str, accessor: ConfigAccessor) -> None:
        with self._accessors_lock:
            self._accessors[name].add(accessor)
            # Names whose accessors were all released are swept once the map doubles
            if len(self._accessors) >= self._accessors_sweep_size:
                self._prune_accessors(list(self._accessors))
                self._accessors_sweep_size = max(ACCESSOR_SWEEP_SIZE, 2 * len(self._accessors))

    def _prune_accessors(self, names: Iterable[str]) -> None:
        """Drop names without live accessors. Caller holds _accessors_lock."""
        for name in names:
            accessors = self._accessors.get(name)
            if accessors is not None and not accessors:
                del self._accessors[name]

    def _invalidate_accessors(self, property_names: Set[str]) -> None:
        """Clear the cache of every accessor bound to a changed property.

        Args:
            property_names: Names reported as changed by a source
        """
        with self._accessors_lock:
            affected = [
                accessor
                for name in property_names
                if name in self._accessors
                for accessor in list(self._accessors[name])
            ]
            self._prune_accessors(property_names)

        for accessor in affected:
            accessor.invalidate()
        if affected:
            logger.debug("Invalidated %d accessors for %s", len(affected), sorted(property_names))

    def _get_raw_value(self, name: str) -> Optional[str]:
        """Get the raw value from the first source defining the property."""
        for source in self._sources:
            value = source.get_value(name)
            if value is not None:
                return value
        return None

    def _should_expand(self, evaluate_variables: Optional[bool]) -> bool:
        return self.evaluate_variables if evaluate_variables is None else evaluate_variables

    def _convert_raw_value(self, raw_value: str, target_type: Any, evaluate_variables: Optional[bool]) -> Any:
        if self._should_expand(evaluate_variables):
            raw_value = self._interpolation.expand(raw_value)
        return self.converters.convert(raw_value, target_type, self.separator)

    def __repr__(self) -> str:
        return f"PropConfig({list(self._sources)!r})"
