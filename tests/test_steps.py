# tests/test_steps.py
import dataclasses

import pytest

from arch_installer.lib.env import PATHS
from arch_installer.pipeline import StepContext
from arch_installer.run_state import RunState
from arch_installer.steps import (
    ConfigureSystemStep,
    CreateUserStep,
    FormatPartitionsStep,
    GenerateFstabStep,
    InstallBaseStep,
    InstallBootloaderStep,
    MountFilesystemsStep,
    PartitionDiskStep,
    UpdateMirrorsStep,
)


@pytest.fixture
def ctx(make_ctx):
    return make_ctx(10)


@pytest.fixture
def block_cmds(monkeypatch, fake_run_cmd):
    monkeypatch.setattr("arch_installer.lib.block.run_cmd", fake_run_cmd)
    return fake_run_cmd


@pytest.fixture
def target(tmp_path):
    root = tmp_path / "target"
    (root / "etc").mkdir(parents=True)
    return root


def _blkid(kind, dev):
    return ("blkid", "-s", kind, "-o", "value", dev)


def test_mirrorlist_check(monkeypatch, tmp_path, ctx):
    mirrorlist = tmp_path / "mirrorlist"
    monkeypatch.setattr(
        "arch_installer.steps.step_02_update_mirrors.PATHS",
        dataclasses.replace(PATHS, mirrorlist=str(mirrorlist)),
    )
    assert UpdateMirrorsStep().verify(ctx) is False

    mirrorlist.write_text("Server = https://geo.mirror.pkgbuild.com/$repo/os/$arch\n")
    assert UpdateMirrorsStep().verify(ctx) is True


def test_partition_check_counts_partitions(block_cmds, ctx):
    key = ("lsblk", "-lnp", "-o", "NAME,TYPE", "/dev/sdz")
    block_cmds.outputs[key] = "/dev/sdz disk\n/dev/sdz1 part\n/dev/sdz2 part\n"
    assert PartitionDiskStep().verify(ctx) is False

    block_cmds.outputs[key] += "/dev/sdz3 part\n"
    assert PartitionDiskStep().verify(ctx) is True


def test_format_check_reads_each_filesystem(block_cmds, ctx):
    block_cmds.outputs[_blkid("TYPE", "/dev/sdz1")] = "vfat\n"
    block_cmds.outputs[_blkid("TYPE", "/dev/sdz2")] = "swap\n"
    block_cmds.outputs[_blkid("TYPE", "/dev/sdz3")] = "ext4\n"
    assert FormatPartitionsStep().verify(ctx) is True

    block_cmds.outputs[_blkid("TYPE", "/dev/sdz3")] = "ntfs\n"
    assert FormatPartitionsStep().verify(ctx) is False


def test_mount_check_needs_root_boot_and_swap(monkeypatch, fake_run_cmd, ctx, install_config):
    monkeypatch.setattr("arch_installer.verify.run_cmd", fake_run_cmd)
    root = install_config.target_root
    findmnt = ("findmnt", "--noheadings", "--output", "TARGET", "--mountpoint")
    fake_run_cmd.outputs[(*findmnt, root)] = root + "\n"
    fake_run_cmd.outputs[("swapon", "--show=NAME", "--noheadings")] = "/dev/sdz2\n"
    assert MountFilesystemsStep().verify(ctx) is False

    fake_run_cmd.outputs[(*findmnt, f"{root}/boot")] = f"{root}/boot\n"
    assert MountFilesystemsStep().verify(ctx) is True

    fake_run_cmd.outputs[("swapon", "--show=NAME", "--noheadings")] = ""
    assert MountFilesystemsStep().verify(ctx) is False


def test_mount_check_with_trailing_slash_target(monkeypatch, fake_run_cmd, install_config):
    root = install_config.target_root
    cfg = dataclasses.replace(install_config, target_root=root + "/")
    ctx = StepContext(config=cfg, run_state=RunState(total_steps=10))
    monkeypatch.setattr("arch_installer.verify.run_cmd", fake_run_cmd)
    findmnt = ("findmnt", "--noheadings", "--output", "TARGET", "--mountpoint")
    fake_run_cmd.outputs[(*findmnt, root)] = root + "\n"
    fake_run_cmd.outputs[(*findmnt, f"{root}/boot")] = f"{root}/boot\n"
    fake_run_cmd.outputs[("swapon", "--show=NAME", "--noheadings")] = "/dev/sdz2\n"

    assert MountFilesystemsStep().verify(ctx) is True


def test_base_install_check_queries_every_package(monkeypatch, fake_run_cmd, ctx, install_config):
    monkeypatch.setattr("arch_installer.lib.pkg.run_cmd", fake_run_cmd)
    assert InstallBaseStep().verify(ctx) is True
    queried = [argv[-1] for argv in fake_run_cmd.calls]
    assert queried == list(install_config.base_packages)

    fake_run_cmd.failures[("pacman", "--root", install_config.target_root, "-Q", "grub")] = 1
    assert InstallBaseStep().verify(ctx) is False


def test_fstab_is_appended_and_checked_for_root_uuid(monkeypatch, fake_run_cmd, block_cmds, ctx, target):
    monkeypatch.setattr("arch_installer.steps.step_07_generate_fstab.run_cmd", fake_run_cmd)
    fstab = target / "etc/fstab"
    fstab.write_text("# Static information about the filesystems.\n")
    fake_run_cmd.outputs[("genfstab", "-U", str(target))] = "UUID=1111-aaaa  /  ext4  rw,relatime  0 1\n"
    fake_run_cmd.outputs[_blkid("UUID", "/dev/sdz3")] = "1111-aaaa\n"

    GenerateFstabStep().run(ctx)

    assert fstab.read_text() == (
        "# Static information about the filesystems.\n"
        "UUID=1111-aaaa  /  ext4  rw,relatime  0 1\n"
    )
    assert GenerateFstabStep().verify(ctx) is True

    fake_run_cmd.outputs[_blkid("UUID", "/dev/sdz3")] = "2222-bbbb\n"
    assert GenerateFstabStep().verify(ctx) is False


def test_configure_check_reads_hostname_and_locale(ctx, target):
    assert ConfigureSystemStep().verify(ctx) is False

    (target / "etc/hostname").write_text("testhost\n")
    assert ConfigureSystemStep().verify(ctx) is False

    (target / "etc/locale.conf").write_text("LANG=en_US.UTF-8\n")
    assert ConfigureSystemStep().verify(ctx) is True


@pytest.mark.parametrize(
    "boot_mode, files",
    [
        ("uefi", ["boot/grub/grub.cfg", "boot/EFI/GRUB/grubx64.efi"]),
        ("bios", ["boot/grub/grub.cfg", "boot/grub/i386-pc/core.img"]),
    ],
)
def test_bootloader_check_needs_every_boot_file(boot_mode, files, install_config, target):
    cfg = dataclasses.replace(install_config, boot_mode=boot_mode)
    ctx = StepContext(config=cfg, run_state=RunState(total_steps=10))

    first = target / files[0]
    first.parent.mkdir(parents=True)
    first.write_text("menuentry\n")
    assert InstallBootloaderStep().verify(ctx) is False

    second = target / files[1]
    second.parent.mkdir(parents=True, exist_ok=True)
    second.write_bytes(b"\x7fELF")
    assert InstallBootloaderStep().verify(ctx) is True


def test_user_check_reads_target_passwd(ctx, target):
    passwd = target / "etc/passwd"
    passwd.write_text("root:x:0:0::/root:/bin/bash\nnottester:x:1000:1000::/home/nottester:/bin/bash\n")
    assert CreateUserStep().verify(ctx) is False

    passwd.write_text(passwd.read_text() + "tester:x:1001:1001::/home/tester:/bin/bash\n")
    assert CreateUserStep().verify(ctx) is True
