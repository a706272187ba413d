"""Configuration source contract and an in-memory source."""

import logging
import threading
from typing import Callable, Dict, List, Mapping, Optional, Set

logger = logging.getLogger(__name__)

ChangeListener = Callable[[Set[str]], None]


class Subscription:
    """Handle returned by ConfigSource.on_change.

    Closing it unregisters the listener. Closing twice is a no-op.
    """

    def __init__(self, unsubscribe: Optional[Callable[[], None]] = None):
        self._unsubscribe = unsubscribe
        self._lock = threading.Lock()
        self.closed = False

    def close(self) -> None:
        with self._lock:
            if self.closed:
                return
            self.closed = True
            unsubscribe = self._unsubscribe
        if unsubscribe is not None:
            unsubscribe()


class ConfigSource:
    """Provider of raw property values.

    Subclasses implement get_value and get_property_names. Sources able to
    detect changes also override on_change and call the listener with the
    names of the changed properties.
    """

    name: str = "unnamed"

    def get_value(self, name: str) -> Optional[str]:
        """Return the raw value of a property, or None if undefined."""
        raise NotImplementedError

    def get_property_names(self) -> Set[str]:
        """Return the names of all properties this source defines."""
        raise NotImplementedError

    def on_change(self, listener: ChangeListener) -> Subscription:
        """Register a change listener. Sources without change detection never call it."""
        return Subscription()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class MappingSource(ConfigSource):
    """In-memory source backed by a dict of strings.

    Writes publish a new dict so reads never lock, then notify listeners
    outside the lock with the set of names whose value changed.
    """

    def __init__(self, properties: Optional[Mapping[str, str]] = None, name: str = "mapping"):
        """Initialize mapping source.

        Args:
            properties: Initial properties  # (property name -> raw string)
            name: Source name used in logs and repr
        """
        self.name = name
        self._properties: Dict[str, str] = dict(properties or {})
        self._listeners: List[ChangeListener] = []
        self._lock = threading.Lock()

    def get_value(self, name: str) -> Optional[str]:
        return self._properties.get(name)

    def get_property_names(self) -> Set[str]:
        return set(self._properties)

    def on_change(self, listener: ChangeListener) -> Subscription:
        with self._lock:
            self._listeners.append(listener)
        return Subscription(lambda: self._remove_listener(listener))

    def set_value(self, name: str, value: str) -> None:
        self.update({name: value})

    def remove_value(self, name: str) -> None:
        self.update({name: None})

    def update(self, properties: Mapping[str, Optional[str]]) -> None:
        """Apply several writes at once and notify listeners a single time.

        Args:
            properties: New values, None removes the property  # (name -> raw string or None)
        """
        with self._lock:
            updated = dict(self._properties)
            changed = set()  # Set[str] (names whose value differs afterwards)
            for name, value in properties.items():
                if value is None:
                    if name in updated:
                        del updated[name]
                        changed.add(name)
                elif updated.get(name) != value:
                    updated[name] = value
                    changed.add(name)
            self._properties = updated
            listeners = list(self._listeners)

        if not changed:
            return
        logger.debug("Source %s changed properties %s", self.name, sorted(changed))
        for listener in listeners:
            listener(set(changed))

    def _remove_listener(self, listener: ChangeListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
