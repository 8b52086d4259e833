"""
Unit tests for dependency resolution between top-level devices.
"""
import pytest

from strata.core.dependency import device_list, sort_devices
from strata.core.exceptions import DependencyCycleError
from strata.core.schema import parse_layout
from strata.core.script import collect_metadata, resolve_order


def _lv_with_pv(vg):
    return {"size": "1G", "content": {"type": "lvm_pv", "vg": vg}}


# -----------------------------------------------------------------------------
# Ordering
# -----------------------------------------------------------------------------

def test_device_list_follows_group_order():
    layout = parse_layout({
        "nodev": {"/tmp": {"fsType": "tmpfs"}},
        "lvm_vg": {"pool": {}},
        "disk": {"b": {"device": "/dev/sdb"}, "a": {"device": "/dev/sda"}},
    })

    assert device_list(layout) == [
        ("disk", "b"), ("disk", "a"), ("lvm_vg", "pool"), ("nodev", "/tmp"),
    ]


def test_members_precede_their_aggregate(lvm_layout):
    layout = parse_layout(lvm_layout)

    order = resolve_order(layout)

    assert order == [("disk", "a"), ("disk", "b"), ("lvm_vg", "pool")]


def test_dependency_overrides_group_order():
    """A pool fed by a logical volume comes after the volume group."""
    layout = parse_layout({
        "disk": {"a": {"device": "/dev/sda", "content": {"type": "lvm_pv", "vg": "vg"}}},
        "zpool": {"tank": {}},
        "lvm_vg": {
            "vg": {"lvs": {"zdata": {"size": "100%FREE", "content": {"type": "zfs", "pool": "tank"}}}},
        },
    })

    order = resolve_order(layout)

    assert order == [("disk", "a"), ("lvm_vg", "vg"), ("zpool", "tank")]


def test_sort_is_stable_without_dependencies():
    layout = parse_layout({
        "disk": {name: {"device": f"/dev/sd{name}"} for name in ("c", "a", "b")},
    })

    assert sort_devices({}, layout) == [("disk", "c"), ("disk", "a"), ("disk", "b")]


def test_references_to_missing_devices_are_ignored():
    layout = parse_layout({
        "disk": {"a": {"device": "/dev/sda", "content": {"type": "lvm_pv", "vg": "ghost"}}},
    })

    metadata = collect_metadata(layout)

    assert ("lvm_vg", "ghost") not in device_list(layout)
    assert resolve_order(layout, metadata) == [("disk", "a")]


# -----------------------------------------------------------------------------
# Cycles
# -----------------------------------------------------------------------------

def test_cycle_is_reported_with_its_members():
    layout = parse_layout({
        "lvm_vg": {
            "one": {"lvs": {"lv": _lv_with_pv("two")}},
            "two": {"lvs": {"lv": _lv_with_pv("one")}},
        },
    })

    with pytest.raises(DependencyCycleError) as excinfo:
        resolve_order(layout)

    cycle = excinfo.value.cycle
    assert ("lvm_vg", "one") in cycle
    assert ("lvm_vg", "two") in cycle
    assert cycle[0] == cycle[-1]
    assert "lvm_vg.one" in str(excinfo.value)
    assert "lvm_vg.two" in str(excinfo.value)


def test_self_dependency_is_a_cycle():
    layout = parse_layout({
        "lvm_vg": {"loop": {"lvs": {"lv": _lv_with_pv("loop")}}},
    })

    with pytest.raises(DependencyCycleError) as excinfo:
        resolve_order(layout)

    assert excinfo.value.cycle == [("lvm_vg", "loop"), ("lvm_vg", "loop")]
