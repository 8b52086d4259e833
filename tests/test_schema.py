"""
Unit tests for layout validation and normalisation.
"""
import logging

import pytest

from strata import compile_layout
from strata.core.exceptions import SchemaError
from strata.core.schema import parse_layout


def _disk(content):
    return {"disk": {"main": {"device": "/dev/sda", "content": content}}}


def _table(*partitions):
    return _disk({"type": "table", "partitions": list(partitions)})


# -----------------------------------------------------------------------------
# Normalisation
# -----------------------------------------------------------------------------

def test_defaults_are_filled_in(gpt_layout):
    layout = parse_layout(gpt_layout)

    disk = layout["disk"]["main"]
    assert disk["name"] == "main"
    assert layout["mdadm"] == {}
    assert layout["nodev"] == {}

    boot, root = disk["content"]["partitions"]
    assert boot["index"] == 1
    assert root["index"] == 2
    assert root["part_type"] == "primary"
    assert root["fs_type"] is None
    assert root["flags"] == []
    assert root["content"]["mount_options"] == ["defaults"]
    assert root["content"]["extra_args"] == []
    assert root["hooks"] == {"pre_create": "", "post_create": "", "pre_mount": "", "post_mount": ""}


def test_names_default_to_collection_keys(lvm_layout, btrfs_layout):
    lvs = parse_layout(lvm_layout)["lvm_vg"]["pool"]["lvs"]
    assert [lv["name"] for lv in lvs.values()] == ["home", "root"]

    layout = parse_layout(btrfs_layout)
    assert layout["nodev"]["/tmp"]["mountpoint"] == "/tmp"
    assert layout["nodev"]["/tmp"]["device"] == "none"
    subvolumes = layout["disk"]["nvme"]["content"]["partitions"][1]["content"]["subvolumes"]
    assert subvolumes["home"]["name"] == "home"


def test_devices_wrapper_is_accepted(gpt_layout):
    assert parse_layout({"devices": gpt_layout}) == parse_layout(gpt_layout)


def test_extra_args_string_is_split():
    layout = parse_layout(_disk({
        "type": "filesystem", "format": "ext4", "mountpoint": "/", "extraArgs": "-L 'my root'",
    }))

    assert layout["disk"]["main"]["content"]["extra_args"] == ["-L", "my root"]


def test_hooks_are_normalised():
    layout = parse_layout({
        "disk": {"main": {"device": "/dev/sda", "preCreateHook": "echo hi", "postMountHook": "sync"}},
    })

    hooks = layout["disk"]["main"]["hooks"]
    assert hooks["pre_create"] == "echo hi"
    assert hooks["post_mount"] == "sync"
    assert hooks["post_create"] == ""


def test_unknown_option_only_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="strata"):
        layout = parse_layout({"disk": {"main": {"device": "/dev/sda", "imageSize": "2G"}}})

    assert layout["disk"]["main"]["device"] == "/dev/sda"
    assert "imageSize" in caplog.text


def test_defaults_are_not_shared_between_nodes():
    layout = parse_layout({"nodev": {"/a": {"fsType": "tmpfs"}, "/b": {"fsType": "tmpfs"}}})

    layout["nodev"]["/a"]["mount_options"].append("noexec")

    assert layout["nodev"]["/b"]["mount_options"] == ["defaults"]


# -----------------------------------------------------------------------------
# Structural errors
# -----------------------------------------------------------------------------

def test_unknown_node_type():
    with pytest.raises(SchemaError, match="unknown node type 'ntfs'"):
        parse_layout(_disk({"type": "ntfs", "mountpoint": "/"}))


def test_content_without_type():
    with pytest.raises(SchemaError, match="missing required field 'type'"):
        parse_layout(_disk({"format": "ext4", "mountpoint": "/"}))


def test_table_not_allowed_inside_partition():
    with pytest.raises(SchemaError, match="cannot be placed here"):
        parse_layout(_table({"content": {"type": "table"}}))


def test_missing_required_field():
    with pytest.raises(SchemaError, match="missing required field 'mountpoint'"):
        parse_layout(_disk({"type": "filesystem", "format": "ext4"}))


@pytest.mark.parametrize("layout, key", [
    ({"disk": {"main": {"device": None}}}, "device"),
    (_disk({"type": "filesystem", "format": "ext4", "mountpoint": None}), "mountpoint"),
    (_disk({"type": "filesystem", "format": None, "mountpoint": "/"}), "format"),
    ({"lvm_vg": {"pool": {"lvs": {"root": {"size": None}}}}}, "size"),
])
def test_null_required_field(layout, key):
    with pytest.raises(SchemaError, match=f"missing required field '{key}'"):
        parse_layout(layout)


def test_null_required_field_fails_compilation():
    with pytest.raises(SchemaError, match="main: missing required field 'device'"):
        compile_layout({"disk": {"main": {"device": None, "content": {"type": "table"}}}})


def test_null_optional_field_takes_default():
    layout = parse_layout({
        "disk": {"main": {"device": "/dev/sda", "name": None, "content": {
            "type": "filesystem", "format": "ext4", "mountpoint": "/", "mountOptions": None,
        }}},
        "zpool": {"tank": {"mode": None}},
    })

    assert layout["disk"]["main"]["name"] == "main"
    assert layout["disk"]["main"]["content"]["mount_options"] == ["defaults"]
    assert layout["zpool"]["tank"]["mode"] == ""


def test_relative_mountpoint():
    with pytest.raises(SchemaError, match="absolute path"):
        parse_layout(_disk({"type": "filesystem", "format": "ext4", "mountpoint": "home"}))


def test_duplicate_partition_index():
    with pytest.raises(SchemaError, match="index 1 is already used"):
        parse_layout(_table({"index": 1}, {"index": 1}))


@pytest.mark.parametrize("index", [0, -2, "2", True])
def test_invalid_partition_index(index):
    with pytest.raises(SchemaError, match="positive integer"):
        parse_layout(_table({"index": index}))


def test_unknown_table_format():
    with pytest.raises(SchemaError, match="gpt"):
        parse_layout(_disk({"type": "table", "format": "apm"}))


def test_zfs_volume_requires_size():
    with pytest.raises(SchemaError, match="'size'"):
        parse_layout({"zpool": {"tank": {"datasets": {"vol": {"zfs_type": "volume"}}}}})


def test_group_root_must_match_group():
    with pytest.raises(SchemaError, match="expected a disk node"):
        parse_layout({"disk": {"main": {"type": "lvm_vg"}}})


def test_unknown_group():
    with pytest.raises(SchemaError, match="Unknown device group"):
        parse_layout({"disks": {}})


def test_layout_must_be_a_mapping():
    with pytest.raises(SchemaError):
        parse_layout(["disk"])
