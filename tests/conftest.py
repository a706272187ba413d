"""Pytest configuration and shared fixtures for PropConf tests."""

from textwrap import dedent
from typing import Dict, List, Optional, Set

import pytest
import yaml
from propconf import ConfigSource, MappingSource, PropConfig, Subscription


class ManualSource(ConfigSource):
    """Source whose writes stay silent until announced.

    Tests edit `properties` directly and call `announce` to emit a change
    notification, like a file watcher would.
    """

    def __init__(self, properties: Optional[Dict[str, str]] = None, name: str = "manual"):
        self.name = name
        self.properties = dict(properties or {})
        self.listeners: List = []

    def get_value(self, name: str) -> Optional[str]:
        return self.properties.get(name)

    def get_property_names(self) -> Set[str]:
        return set(self.properties)

    def on_change(self, listener) -> Subscription:
        self.listeners.append(listener)
        return Subscription(lambda: self.listeners.remove(listener))

    def announce(self, *names: str) -> None:
        for listener in list(self.listeners):
            listener(set(names))


def yaml_source(content: str, name: str = "yaml") -> MappingSource:
    """Build a mapping source from a flat YAML mapping.

    Args:
        content: YAML text  # (property name -> scalar)
        name: Source name

    Returns:
        Source holding every value as a string
    """
    data = yaml.safe_load(dedent(content)) or {}
    return MappingSource({key: "" if value is None else str(value) for key, value in data.items()}, name)


@pytest.fixture
def source() -> MappingSource:
    """Create a mapping source with a few server properties."""
    return yaml_source(
        """
        server.host: example.org
        server.port: "8080"
        server.debug: "yes"
        server.url: http://${server.host}:${server.port}
        """
    )


@pytest.fixture
def manual_source() -> ManualSource:
    """Create a source with silent writes and explicit change notifications."""
    return ManualSource({"name": "a", "other": "x"})


@pytest.fixture
def config(source: MappingSource) -> PropConfig:
    """Create a configuration with expansion disabled."""
    with PropConfig([source]) as config:
        yield config
