"""
Unit tests for metadata aggregation.
"""
from strata.core.metadata import deep_merge, dependencies_of, dependency, merge_all


def test_deep_merge_nested_mappings():
    base = {"dependencies": {"lvm_vg": {"pool": [("disk", "a")]}}}
    update = {"dependencies": {"zpool": {"tank": [("disk", "b")]}}}

    merged = deep_merge(base, update)

    assert merged == {
        "dependencies": {
            "lvm_vg": {"pool": [("disk", "a")]},
            "zpool": {"tank": [("disk", "b")]},
        }
    }


def test_deep_merge_concatenates_lists_without_duplicates():
    """Members of one aggregate found under several devices all survive."""
    merged = merge_all([
        dependency("lvm_vg", "pool", ("disk", "a")),
        dependency("lvm_vg", "pool", ("disk", "b")),
        dependency("lvm_vg", "pool", ("disk", "a")),
    ])

    assert dependencies_of(merged) == {"lvm_vg": {"pool": [("disk", "a"), ("disk", "b")]}}


def test_deep_merge_scalar_last_write_wins():
    assert deep_merge({"x": 1, "y": 2}, {"x": 3}) == {"x": 3, "y": 2}


def test_deep_merge_does_not_modify_inputs():
    base = {"a": {"b": [1]}}
    update = {"a": {"b": [2]}}

    deep_merge(base, update)

    assert base == {"a": {"b": [1]}}
    assert update == {"a": {"b": [2]}}


def test_merge_all_empty():
    assert merge_all([]) == {}
    assert dependencies_of({}) == {}
