"""PropConf - Typed Property Configuration.

Resolves named properties from prioritized sources into typed values, with
${...} variable expansion, collection decoding, implicit converters and
cached, change-aware accessors.
"""
# ruff: noqa: F401

from .accessor import ConfigAccessor, ConfigAccessorBuilder, ConfigSnapshot
from .config import EVALUATE_VARIABLES_PROPERTY, PropConfig
from .converters import (
    Char,
    ConverterRegistry,
    OptionalDecimal,
    OptionalFloat,
    OptionalInt,
    OptionalNumber,
)
from .exceptions import (
    ConversionError,
    ExpansionError,
    NoConverterError,
    NotFoundError,
    PropConfError,
)
from .interpolation import InterpolationEngine, expand
from .sources import ConfigSource, MappingSource, Subscription

__version__ = "0.1.0"
