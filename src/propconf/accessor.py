"""Typed, optionally cached accessors bound to a single property."""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from .converters import Converter, wrap
from .exceptions import PropConfError

if TYPE_CHECKING:
    from .config import PropConfig

logger = logging.getLogger(__name__)


class ConfigSnapshot:
    """Values of several accessors captured at the same point in time."""

    def __init__(self, values: Dict[ConfigAccessor, Any]):
        self._values = dict(values)

    def __contains__(self, accessor: ConfigAccessor) -> bool:
        return accessor in self._values

    def __len__(self) -> int:
        return len(self._values)

    def value_of(self, accessor: ConfigAccessor) -> Any:
        """Get the captured value of an accessor.

        Raises:
            PropConfError: If the accessor was not part of the snapshot
        """
        try:
            return self._values[accessor]
        except KeyError:
            raise PropConfError(f"Property '{accessor.property_name}' is not part of this snapshot") from None


class ConfigAccessor:
    """Handle to one property, resolved through the optional lookup path.

    When a cache duration is set, the last value is reused until it expires or
    until a source reports the property as changed. Lookup failures never
    propagate; the default value is returned instead.

    A custom converter only sees defined, non-empty raw values. It is never
    called with None: an undefined property yields the default value without
    invoking the converter. Errors raised by the custom converter propagate
    from get_value as ConversionError.
    """

    def __init__(
        self,
        config: PropConfig,
        property_name: str,
        target_type: Any = str,
        default_value: Any = None,
        converter: Optional[Converter] = None,
        cache_seconds: Optional[float] = None,
        evaluate_variables: Optional[bool] = None,
    ):
        """Initialize accessor.

        Args:
            config: Owning configuration
            property_name: Name of the property to read
            target_type: Type of the returned value
            default_value: Value used when the property is undefined or unusable
            converter: Custom converter applied to the raw string instead of the registry  # (never given None)
            cache_seconds: Cache duration, None disables caching
            evaluate_variables: Expansion override, None follows the configuration
        """
        self.config = config
        self.property_name = property_name
        self.target_type = target_type
        self.default_value = default_value
        self.converter = converter
        self.cache_seconds = cache_seconds
        self.evaluate_variables = evaluate_variables

        # Memo cell, guarded by _lock; resolution itself runs unlocked
        self._lock = threading.Lock()
        self._cached_value: Any = None
        self._cached_time = 0.0
        self._generation = 0  # (bumped by every invalidation)

    def get_value(self, snapshot: Optional[ConfigSnapshot] = None) -> Any:
        """Get the current value of the property.

        Args:
            snapshot: Read the value captured in this snapshot instead

        Returns:
            Resolved value, or the default value
        """
        if snapshot is not None:
            return snapshot.value_of(self)

        generation = None
        if self.cache_seconds is not None:
            with self._lock:
                cached_value, cached_time, generation = self._cached_value, self._cached_time, self._generation
            if cached_value is not None and time.monotonic() - cached_time < self.cache_seconds:
                return cached_value

        value = self._resolve()
        if value is None:
            value = self.default_value

        if self.cache_seconds is not None:
            with self._lock:
                # An invalidation during resolution makes this value stale
                if self._generation == generation:
                    self._cached_value = value
                    self._cached_time = time.monotonic()
        return value

    def get_optional_value(self) -> Any:
        """Get the property value without default and without cache.

        Returns:
            Resolved value, or None if undefined or unusable
        """
        return self._resolve()

    def invalidate(self) -> None:
        """Drop the cached value so the next get_value resolves again."""
        with self._lock:
            self._cached_value = None
            self._generation += 1

    def _resolve(self) -> Any:
        if self.converter is not None:
            raw_value = self.config.get_optional_value(self.property_name, str, self.evaluate_variables)
            return self.converter(raw_value) if raw_value is not None else None
        return self.config.get_optional_value(self.property_name, self.target_type, self.evaluate_variables)

    def __repr__(self) -> str:
        return f"ConfigAccessor({self.property_name!r})"


class ConfigAccessorBuilder:
    """Fluent builder for ConfigAccessor, obtained from PropConfig.access."""

    def __init__(self, config: PropConfig, property_name: str, target_type: Any = str):
        self._config = config
        self._property_name = property_name
        self._target_type = target_type
        self._converter: Optional[Converter] = None
        self._default_value: Any = None
        self._default_string_value: Optional[str] = None
        self._cache_seconds: Optional[float] = None
        self._evaluate_variables: Optional[bool] = None

    def use_converter(self, converter: Converter) -> ConfigAccessorBuilder:
        self._converter = converter
        return self

    def with_default(self, value: Any) -> ConfigAccessorBuilder:
        self._default_value = value
        return self

    def with_string_default(self, value: str) -> ConfigAccessorBuilder:
        self._default_string_value = value
        return self

    def cache_for(self, duration: Union[timedelta, float]) -> ConfigAccessorBuilder:
        """Cache resolved values.

        Args:
            duration: Cache duration  # (timedelta, or seconds as a number)
        """
        seconds = duration.total_seconds() if isinstance(duration, timedelta) else float(duration)
        if seconds < 0:
            raise ValueError(f"Cache duration must not be negative, got {duration!r}")
        self._cache_seconds = seconds
        return self

    def evaluate_variables(self, evaluate: bool = True) -> ConfigAccessorBuilder:
        self._evaluate_variables = evaluate
        return self

    def build(self) -> ConfigAccessor:
        """Build the accessor and register it for change notifications.

        Raises:
            ConversionError: If the string default cannot be converted
            NoConverterError: If no converter exists for the target type
        """
        converter = wrap(self._converter, self._target_type) if self._converter is not None else None
        accessor = ConfigAccessor(
            self._config,
            self._property_name,
            target_type=self._target_type,
            default_value=self._resolve_default_value(converter),
            converter=converter,
            cache_seconds=self._cache_seconds,
            evaluate_variables=self._evaluate_variables,
        )
        self._config._register_accessor(self._property_name, accessor)
        logger.debug("Built accessor for %r", self._property_name)
        return accessor

    def _resolve_default_value(self, converter: Optional[Converter]) -> Any:
        """Resolve the default once: literal default first, then string default."""
        if self._default_value is not None:
            return self._default_value
        if self._default_string_value is not None:
            if converter is not None:
                return converter(self._default_string_value)
            return self._config.convert(self._default_string_value, self._target_type)
        return None
