"""String to value converters and the converter registry."""

import inspect
import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, get_args, get_origin

from .exceptions import ConversionError, NoConverterError
from .utils import import_object, load_yaml, split_values

logger = logging.getLogger(__name__)

Converter = Callable[[Optional[str]], Any]

TRUE_VALUES = frozenset({"TRUE", "1", "YES", "Y", "ON", "JA", "J", "SI", "SIM", "OUI"})

# Single-string factories looked up on a type without a registered converter, in order
FACTORY_METHOD_NAMES = ("of", "value_of", "valueOf", "parse", "from_string", "fromString", "fromisoformat")

COLLECTION_TYPES = (list, tuple, set, frozenset)


class Char(str):
    """A string holding exactly one character."""

    __slots__ = ()

    def __new__(cls, value: str) -> "Char":
        if len(value) != 1:
            raise ValueError(f"{value!r} can not be converted to a Char")
        return super().__new__(cls, value)


@dataclass(frozen=True)
class OptionalNumber:
    """Number that may be explicitly empty.

    Missing or blank properties convert to ``empty()`` instead of failing.
    """

    value: Optional[Any] = None

    _parse = None

    @classmethod
    def of(cls, value: Any) -> "OptionalNumber":
        return cls(value)

    @classmethod
    def empty(cls) -> "OptionalNumber":
        return cls()

    @property
    def is_present(self) -> bool:
        return self.value is not None

    def get(self) -> Any:
        """Return the wrapped number.

        Raises:
            LookupError: If this instance is empty
        """
        if self.value is None:
            raise LookupError(f"{type(self).__name__} is empty")
        return self.value

    def or_else(self, other: Any) -> Any:
        return self.value if self.value is not None else other


class OptionalInt(OptionalNumber):
    _parse = int


class OptionalFloat(OptionalNumber):
    _parse = float


class OptionalDecimal(OptionalNumber):
    _parse = Decimal


def is_optional_number(target_type: Any) -> bool:
    """Check if target type is one of the optional number wrappers."""
    if get_origin(target_type) is not None:
        return False
    return isinstance(target_type, type) and issubclass(target_type, OptionalNumber)


def wrap(converter: Converter, target_type: Any) -> Converter:
    """Make every failure of a converter surface as ConversionError.

    Args:
        converter: Converter to wrap
        target_type: Type the converter produces  # (reported in error messages)

    Returns:
        Converter raising only ConversionError on bad input
    """

    def wrapped(value: Optional[str]) -> Any:
        try:
            return converter(value)
        except ConversionError:
            raise
        except Exception as e:
            raise ConversionError(value, target_type, str(e) or type(e).__name__) from e

    return wrapped


def _nullable(parse: Callable[[str], Any]) -> Converter:
    """Build a converter that maps None to None and parses anything else."""

    def convert(value: Optional[str]) -> Any:
        return parse(value) if value is not None else None

    return convert


def _convert_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value.upper() in TRUE_VALUES


def _convert_char(value: Optional[str]) -> Optional[Char]:
    if value is None:
        return None
    if len(value) != 1:
        raise ConversionError(value, Char, "expected exactly one character")
    return Char(value)


def _convert_class(value: Optional[str]) -> Optional[type]:
    if value is None:
        return None
    try:
        obj = import_object(value)
    except ImportError as e:
        raise ConversionError(value, type, str(e)) from e
    if not isinstance(obj, type):
        raise ConversionError(value, type, f"{value} is not a class")
    return obj


def _convert_mapping(value: Optional[str]) -> Optional[dict]:
    if value is None:
        return None
    data = load_yaml(value)
    if not isinstance(data, dict):
        raise ConversionError(value, dict, "expected a YAML mapping")
    return data


def _optional_number_converter(optional_type: type) -> Converter:
    def convert(value: Optional[str]) -> OptionalNumber:
        # Blank means "explicitly empty", not malformed
        if value is None or value == "":
            return optional_type.empty()
        return optional_type.of(optional_type._parse(value))

    return convert


BUILTIN_CONVERTERS: Dict[Any, Converter] = {
    target_type: wrap(converter, target_type)
    for target_type, converter in {
        str: lambda value: value,
        bool: _convert_bool,
        int: _nullable(int),
        float: _nullable(float),
        complex: _nullable(complex),
        Decimal: _nullable(Decimal),
        Char: _convert_char,
        type: _convert_class,
        OptionalInt: _optional_number_converter(OptionalInt),
        OptionalFloat: _optional_number_converter(OptionalFloat),
        OptionalDecimal: _optional_number_converter(OptionalDecimal),
        dict: _convert_mapping,
        Any: _nullable(load_yaml),
    }.items()
}


def _accepts_single_string(func: Callable) -> bool:
    """Check if a callable can be called with exactly one positional string."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # Extension types without introspectable signature, let the call decide
        return True
    try:
        signature.bind("")
    except TypeError:
        return False
    return True


def _factory_method(target_type: Any) -> Optional[Converter]:
    """Find a static or class level single-string factory on the type."""
    for name in FACTORY_METHOD_NAMES:
        raw = inspect.getattr_static(target_type, name, None)
        if raw is None:
            continue
        factory = getattr(target_type, name)
        # Instance methods would receive the string as `self`
        is_static = isinstance(raw, staticmethod) or getattr(factory, "__self__", None) is target_type
        if is_static and _accepts_single_string(factory):
            return factory
    return None


def _constructor(target_type: Any) -> Optional[Converter]:
    """Use the type itself when its constructor takes a single string."""
    if not isinstance(target_type, type) or inspect.isabstract(target_type):
        return None
    if _accepts_single_string(target_type):
        return target_type
    return None


IMPLICIT_STRATEGIES: Tuple[Callable[[Any], Optional[Converter]], ...] = (_factory_method, _constructor)


def derive_implicit_converter(target_type: Any) -> Optional[Converter]:
    """Derive a converter from the type's own string construction capability.

    Args:
        target_type: Type without registered converter

    Returns:
        Converter, or None if the type exposes no single-string entry point
    """
    # Parametrized generics such as dict[str, int] are never derived
    if get_origin(target_type) is not None:
        return None

    for strategy in IMPLICIT_STRATEGIES:
        factory = strategy(target_type)
        if factory is not None:
            return _nullable(factory)
    return None


def collection_shape(target_type: Any) -> Optional[Tuple[type, Any]]:
    """Split a collection type descriptor into collection and item types.

    Args:
        target_type: Requested type  # (e.g., list[int], tuple[str, ...], set)

    Returns:
        (collection type, item type) or None for scalar types

    Raises:
        NoConverterError: For fixed-length or heterogeneous tuples
    """
    origin = get_origin(target_type)
    if origin is None:
        # Bare containers hold strings
        if target_type in COLLECTION_TYPES:
            return target_type, str
        return None
    if origin not in COLLECTION_TYPES:
        return None

    args = get_args(target_type)
    if not args:
        return origin, str
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple, args[0]
        raise NoConverterError(target_type)
    return origin, args[0]


class ConverterRegistry:
    """Thread-safe mapping of target types to converters.

    Lookups read the current mapping without locking. A miss derives an
    implicit converter under a lock and publishes a new mapping in which the
    first derived converter for a type is kept.
    """

    def __init__(self, converters: Optional[Dict[Any, Converter]] = None):
        """Initialize registry with built-in converters.

        Args:
            converters: Explicit converters merged over the built-in set  # (type -> converter)
        """
        mapping = dict(BUILTIN_CONVERTERS)
        for target_type, converter in (converters or {}).items():
            mapping[target_type] = wrap(converter, target_type)
        self._converters: Dict[Any, Converter] = mapping
        self._lock = threading.Lock()

    def __contains__(self, target_type: Any) -> bool:
        return target_type in self._converters

    def register(self, target_type: Any, converter: Converter) -> None:
        """Register an explicit converter, replacing any previous one."""
        with self._lock:
            mapping = dict(self._converters)
            mapping[target_type] = wrap(converter, target_type)
            self._converters = mapping

    def get(self, target_type: Any) -> Converter:
        """Get the converter for a type, deriving an implicit one if needed.

        Args:
            target_type: Scalar target type

        Returns:
            Converter for the type

        Raises:
            NoConverterError: If no explicit or implicit converter exists
        """
        converter = self._converters.get(target_type)
        if converter is not None:
            return converter

        with self._lock:
            converter = self._converters.get(target_type)
            if converter is None:
                derived = derive_implicit_converter(target_type)
                if derived is None:
                    raise NoConverterError(target_type)
                mapping = dict(self._converters)
                converter = mapping.setdefault(target_type, wrap(derived, target_type))
                self._converters = mapping
                logger.debug("Derived implicit converter for %r", target_type)
        return converter

    def convert(self, value: Optional[str], target_type: Any, separator: str = ",") -> Any:
        """Convert a raw string to the target type.

        Args:
            value: Raw property value  # (None converts to None)
            target_type: Scalar type or collection descriptor like list[int]
            separator: Element separator for collection types

        Returns:
            Converted value

        Raises:
            ConversionError: If the value is malformed for the type
            NoConverterError: If the type (or element type) has no converter
        """
        if value is None:
            return None

        shape = collection_shape(target_type)
        if shape is not None:
            collection_type, item_type = shape
            return self.convert_many(value, item_type, collection_type, separator)

        return self.get(target_type)(value)

    def convert_many(
        self,
        value: str,
        item_type: Any = str,
        collection_type: Callable[[Iterable[Any]], Any] = list,
        separator: str = ",",
    ) -> Any:
        """Split a raw string and convert every element.

        Args:
            value: Raw property value  # (e.g., "1,2,3"; "" gives an empty collection)
            item_type: Scalar type of the elements
            collection_type: Collection built from the converted elements
            separator: Element separator, escapable with a backslash

        Returns:
            Collection of converted elements
        """
        converter = self.get(item_type)
        return collection_type(converter(item) for item in split_values(value, separator))
