"""Test cases for PropConf property resolution (取得屬性值).

This module tests strict, optional and multi-valued lookups over ordered sources.
"""

import pytest

from propconf import (
    ConfigSource,
    ConversionError,
    MappingSource,
    NoConverterError,
    NotFoundError,
    OptionalInt,
    PropConfig,
)
from tests.conftest import ManualSource, yaml_source
from tests.data.convertibles import Coordinates


def test_first_source_wins():
    """Test source priority.

    Given 多個來源定義相同屬性
    When 取值
    Then 依來源順序，第一個有值的來源勝出
    """
    system = MappingSource({"timeout": "10"}, "system")
    defaults = yaml_source(
        """
        timeout: "30"
        retries: "3"
        """,
        "defaults",
    )
    config = PropConfig([system, defaults])

    assert config.get_value("timeout", int) == 10
    assert config.get_value("retries", int) == 3
    assert config.get_property_names() == {"timeout", "retries"}
    assert config.config_sources == (system, defaults)


def test_missing_property(config: PropConfig):
    """Test strict lookup of an undefined property.

    Given 沒有任何來源定義的屬性
    When 以 get_value 取值
    Then 產生 NotFoundError，OptionalInt 則得到 empty
    """
    with pytest.raises(NotFoundError) as exc_info:
        config.get_value("server.missing", int)

    assert str(exc_info.value) == "Property 'server.missing' not found"
    assert isinstance(exc_info.value, LookupError)
    assert config.get_value("server.missing", OptionalInt) == OptionalInt.empty()


def test_optional_lookup_never_raises(config: PropConfig):
    """Test best-effort optional lookups.

    Given 未定義、格式錯誤或沒有轉換器的屬性
    When 以 get_optional_value 取值
    Then 一律得到 None 而不拋出例外
    """
    assert config.get_optional_value("server.missing") is None
    assert config.get_optional_value("server.missing", int) is None
    assert config.get_optional_value("server.host", int) is None
    assert config.get_optional_value("server.host", Coordinates) is None
    assert config.get_optional_value("server.port", int) == 8080

    with pytest.raises(ConversionError):
        config.get_value("server.host", int)
    with pytest.raises(NoConverterError):
        config.get_value("server.host", Coordinates)


def test_empty_values():
    """Test the treatment of empty strings.

    Given 第一個來源的值為空字串，第二個來源有值
    When 分別以 get_value 與 get_optional_value 取值
    Then 嚴格取值接受空字串，選擇性取值則略過它
    """
    config = PropConfig([MappingSource({"port": ""}, "first"), MappingSource({"port": "5"}, "second")])

    assert config.get_value("port") == ""
    assert config.get_optional_value("port", int) == 5
    assert config.get_value("port", OptionalInt) == OptionalInt.empty()
    with pytest.raises(ConversionError):
        config.get_value("port", int)

    only_empty = PropConfig([MappingSource({"port": ""})])
    assert only_empty.get_optional_value("port") is None


def test_optional_lookup_stops_at_first_non_empty_value():
    """Test that a failing conversion does not fall through to later sources."""
    config = PropConfig([MappingSource({"port": "eighty"}), MappingSource({"port": "80"})])

    assert config.get_optional_value("port", int) is None


def test_multi_valued_properties():
    """Test collection lookups.

    Given 以逗號分隔的屬性與未定義的屬性
    When 以 get_values 取值
    Then 得到指定種類的集合，未定義時得到空集合
    """
    config = PropConfig(
        [
            yaml_source(
                """
                ports: 80,443,8080
                tags: a,b,a
                """
            )
        ]
    )

    assert config.get_values("ports", int) == [80, 443, 8080]
    assert config.get_values("ports", int, tuple) == (80, 443, 8080)
    assert config.get_values("tags", collection_type=set) == {"a", "b"}
    assert config.get_values("missing") == []
    assert config.get_values("missing", int, frozenset) == frozenset()

    with pytest.raises(ConversionError):
        config.get_values("tags", int)


def test_dict_style_access(config: PropConfig):
    """Test dict-style access (字典風格存取).

    Given 已建立的設置物件
    When 使用 dict 風格存取
    Then 與對應的方法行為一致
    """
    assert config["server.host"] == "example.org"
    assert "server.host" in config
    assert "server.missing" not in config
    assert config.get("server.port", target_type=int) == 8080
    assert config.get("server.missing", 0.5, float) == 0.5

    with pytest.raises(NotFoundError):
        config["server.missing"]


def test_sources_without_change_detection():
    """Test sources relying on the default on_change."""

    class ReadOnlySource(ConfigSource):
        def get_value(self, name):
            return {"a": "1"}.get(name)

        def get_property_names(self):
            return {"a"}

    config = PropConfig([ReadOnlySource(), ManualSource({"b": "2"})])

    assert config.get_value("a", int) == 1
    assert config.get_property_names() == {"a", "b"}
    config.close()
    config.close()
