"""
Tests for host-configuration facts, fstab and crypttab rendering.
"""
from strata import compile_layout
from strata.config import HostConfig
from strata.config.crypttab import generate_crypttab, render_crypttab
from strata.config.fstab import generate_fstab, render_fstab
from strata.utils.command import CommandRunner, SimulationMode


def _host_config(layout):
    return HostConfig.from_facts(compile_layout(layout)["config"])


# -----------------------------------------------------------------------------
# Fact projection
# -----------------------------------------------------------------------------

def test_filesystem_facts(gpt_layout):
    facts = compile_layout(gpt_layout)["config"]

    assert facts == [
        {"fact": "filesystem", "mountpoint": "/boot", "device": "/dev/vda1", "fs_type": "vfat", "options": ["defaults"]},
        {"fact": "filesystem", "mountpoint": "/", "device": "/dev/vda2", "fs_type": "ext4", "options": ["defaults"]},
    ]


def test_host_config_grouping(luks_lvm_layout, lvm_layout):
    config = _host_config(luks_lvm_layout)

    assert set(config.file_systems) == {"/boot", "/"}
    assert config.file_systems["/"] == {"device": "/dev/pool/root", "fsType": "ext4", "options": ["defaults"]}
    assert config.luks_devices == {"crypted": {"device": "/dev/nvme0n1p2", "keyFile": "/tmp/secret.key"}}

    assert _host_config(lvm_layout).kernel_modules == ["dm-raid1"]


def test_host_config_swap_and_zfs(btrfs_layout, zfs_layout):
    assert _host_config(btrfs_layout).swap_devices == [
        {"device": "/dev/nvme0n1p3", "randomEncryption": False},
    ]

    config = _host_config(zfs_layout)
    assert config.file_systems["/home"] == {
        "device": "tank/home", "fsType": "zfs", "options": ["defaults", "zfsutil"],
    }
    assert "/hidden" not in config.file_systems
    assert config.swap_devices == [{"device": "/dev/zvol/tank/swap", "randomEncryption": False}]


def test_host_config_keeps_last_filesystem_per_mountpoint():
    config = HostConfig.from_facts([
        {"fact": "filesystem", "mountpoint": "/data", "device": "/dev/sda", "fs_type": "ext4", "options": ["defaults"]},
        {"fact": "filesystem", "mountpoint": "/data", "device": "/dev/sdb", "fs_type": "xfs", "options": ["noatime"]},
    ])

    assert config.file_systems == {
        "/data": {"device": "/dev/sdb", "fsType": "xfs", "options": ["noatime"]},
    }


def test_host_config_to_dict(gpt_layout):
    data = _host_config(gpt_layout).to_dict()

    assert set(data) == {"fileSystems", "swapDevices", "luksDevices", "kernelModules"}
    assert data["fileSystems"]["/boot"]["fsType"] == "vfat"


# -----------------------------------------------------------------------------
# fstab / crypttab
# -----------------------------------------------------------------------------

def test_render_fstab(btrfs_layout):
    lines = render_fstab(_host_config(btrfs_layout)).splitlines()

    assert lines[0].startswith("#")
    assert lines[1:] == [
        "/dev/nvme0n1p2\t/\tbtrfs\tdefaults,subvol=root\t0\t1",
        "/dev/nvme0n1p1\t/boot\tvfat\tdefaults\t0\t2",
        "/dev/nvme0n1p2\t/home\tbtrfs\tcompress=zstd,subvol=home\t0\t2",
        "none\t/tmp\ttmpfs\tsize=2G\t0\t0",
        "/dev/nvme0n1p2\t/var\tbtrfs\tdefaults,subvol=var\t0\t2",
        "/dev/nvme0n1p2\t/var/log\tbtrfs\tdefaults,subvol=log\t0\t2",
        "/dev/nvme0n1p3\tnone\tswap\tdefaults\t0\t0",
    ]


def test_render_crypttab(luks_lvm_layout):
    lines = render_crypttab(_host_config(luks_lvm_layout)).splitlines()

    assert lines[1:] == ["crypted\t/dev/nvme0n1p2\t/tmp/secret.key\tluks"]


def test_generate_fstab_writes_into_target(tmp_path, gpt_layout):
    runner = CommandRunner(SimulationMode.DISABLED, colored_output=False)

    generate_fstab(_host_config(gpt_layout), tmp_path, runner)

    content = (tmp_path / "etc" / "fstab").read_text()
    assert "/dev/vda2\t/\text4\tdefaults\t0\t1\n" in content


def test_generate_in_simulation_writes_nothing(tmp_path, luks_lvm_layout):
    runner = CommandRunner(SimulationMode.SIMULATE, colored_output=False)
    config = _host_config(luks_lvm_layout)

    generate_fstab(config, tmp_path, runner)
    generate_crypttab(config, tmp_path, runner)

    assert not (tmp_path / "etc").exists()


def test_generate_crypttab_skips_unencrypted_layouts(tmp_path, gpt_layout):
    runner = CommandRunner(SimulationMode.DISABLED, colored_output=False)

    generate_crypttab(_host_config(gpt_layout), tmp_path, runner)

    assert not (tmp_path / "etc" / "crypttab").exists()
