"""Custom exceptions for PropConf."""

from typing import Any, Union, get_args, get_origin


class PropConfError(Exception):
    """Base exception for PropConf errors."""

    pass


class NotFoundError(PropConfError, LookupError):
    """Raised when a required property is not defined by any source."""

    def __init__(self, property_name: str, message: str | None = None):
        self.property_name = property_name
        super().__init__(message or f"Property '{property_name}' not found")


class ExpansionError(NotFoundError):
    """Raised when a ${...} reference has no value and no default."""

    def __init__(self, variable: str, template: str):
        self.variable = variable
        self.template = template
        super().__init__(
            variable,
            f"Property '{variable}' not found while expanding {template!r}",
        )


class ConversionError(PropConfError, ValueError):
    """Raised when a converter rejects its input.

    Attributes:
        value: Raw string handed to the converter
        target_type: Type the value was converted to
        reason: Optional human readable detail
    """

    def __init__(self, value: Any, target_type: Any, reason: str | None = None):
        self.value = value
        self.target_type = target_type
        self.reason = reason
        message = f"Cannot convert {value!r} to {format_type(target_type)}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NoConverterError(PropConfError, TypeError):
    """Raised when no explicit or implicit converter exists for a type."""

    def __init__(self, target_type: Any):
        self.target_type = target_type
        super().__init__(f"No converter registered for {format_type(target_type)}")


def format_type(type_obj: Any) -> str:
    """Format type object for display.

    Args:
        type_obj: Type object to format  # (class, generic alias or typing special form)

    Returns:
        Formatted type string
    """
    origin = get_origin(type_obj)

    # Handle Optional types - show inner type
    if origin is Union:
        args = get_args(type_obj)
        if len(args) == 2 and type(None) in args:
            inner_type = args[0] if args[1] is type(None) else args[1]
            return f"Optional[{format_type(inner_type)}]"
        return f"Union[{', '.join(format_type(arg) for arg in args)}]"

    # Handle parametrized containers like list[int] or tuple[int, ...]
    if origin is not None:
        args = get_args(type_obj)
        origin_str = format_type(origin)
        if not args:
            return origin_str
        arg_strs = ["..." if arg is Ellipsis else format_type(arg) for arg in args]
        return f"{origin_str}[{', '.join(arg_strs)}]"

    # Handle builtins without module prefix
    if hasattr(type_obj, "__name__") and hasattr(type_obj, "__module__"):
        if type_obj.__module__ == "builtins":
            return type_obj.__name__
        return f"{type_obj.__module__}.{type_obj.__qualname__}"

    # Fallback to string representation (typing.Any and friends)
    return str(type_obj)
