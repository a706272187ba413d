"""Types without registered converters, for implicit conversion tests."""

from dataclasses import dataclass
from enum import Enum


@dataclass
class Version:
    """Parsed through the `parse` class method."""

    major: int
    minor: int

    @classmethod
    def parse(cls, text: str) -> "Version":
        major, minor = text.split(".")
        return cls(int(major), int(minor))


class Temperature:
    """Factory `of` takes precedence over the single-argument constructor."""

    def __init__(self, degrees):
        self.degrees = degrees

    @staticmethod
    def of(text: str) -> "Temperature":
        return Temperature(float(text.rstrip("C")))


class Endpoint:
    """Both `from_string` and the constructor accept a string."""

    def __init__(self, url: str, created_by: str = "constructor"):
        self.url = url
        self.created_by = created_by

    @classmethod
    def from_string(cls, text: str) -> "Endpoint":
        return cls(text, created_by="factory")


class Hostname:
    """Built through its constructor only."""

    def __init__(self, name: str):
        self.name = name


class Coordinates:
    """Needs two arguments, so no converter can be derived."""

    def __init__(self, x: float, y: float):
        self.x = x
        self.y = y


class Counter:
    """`parse` is an instance method and must not be used as factory."""

    def __init__(self, start: int, step: int):
        self.start = start
        self.step = step

    def parse(self):
        return self.start


class Color(Enum):
    RED = "red"
    GREEN = "green"
