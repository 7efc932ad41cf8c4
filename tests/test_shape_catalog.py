"""Tests for shape_catalog.py."""
import shape_catalog
from shape_catalog import CATALOG, GENERIC_TEMPLATE, categories, lookup, shape_types


def test_catalog_entries_carry_air_value():
    assert len(CATALOG) == 22
    for template in CATALOG.values():
        assert template.air_value == 1.0
        assert template.width > 0 and template.height > 0


def test_lookup_known_type():
    fan = lookup("fan")
    assert (fan.width, fan.height, fan.category) == (40.0, 40.0, "fan")
    assert lookup("entrance").height == 20.0


def test_lookup_unknown_type_is_generic():
    template = lookup("no-such-icon")
    assert template is GENERIC_TEMPLATE
    assert template.air_value is None
    assert (template.width, template.height, template.label) == (50.0, 50.0, "Object")


def test_shape_types_by_category():
    assert [t[0] for t in shape_types("jumper")] == ["jumper", "jumper2", "jumper3", "jumper4"]
    assert len(shape_types()) == len(CATALOG)


def test_categories():
    names = categories()
    assert names == sorted(names)
    assert "doors_windows" in names
    assert shape_catalog.GENERIC_TYPE not in names
