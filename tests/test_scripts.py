# tests/test_scripts.py
import dataclasses

import pytest

from arch_installer.lib.bootloader import expected_boot_files, render_grub_script
from arch_installer.lib.chroot import run_in_target
from arch_installer.errors import CommandError
from arch_installer.run_state import RunState
from arch_installer.steps.step_08_configure_system import render_configure_script
from arch_installer.steps.step_10_create_user import render_user_script


def test_configure_script_uses_config(install_config):
    script = render_configure_script(install_config)
    assert "ln -sf /usr/share/zoneinfo/Asia/Shanghai /etc/localtime" in script
    assert "s/^#en_US\\.UTF-8/en_US.UTF-8/" in script
    assert "echo LANG=en_US.UTF-8 > /etc/locale.conf" in script
    assert "echo testhost > /etc/hostname" in script
    assert "mkinitcpio -P" in script
    assert script.splitlines()[-1] == "chpasswd"
    assert "rootpw" not in script


def test_configure_script_quotes_hostile_values(install_config):
    cfg = dataclasses.replace(install_config, hostname="x; rm -rf /")
    script = render_configure_script(cfg)
    assert "echo 'x; rm -rf /' > /etc/hostname" in script


def test_grub_script_per_boot_mode():
    uefi = render_grub_script(boot_mode="uefi", disk="/dev/sda", kernel_cmdline="loglevel=3")
    assert "--target=x86_64-efi --efi-directory=/boot" in uefi
    assert "efibootmgr" in uefi
    bios = render_grub_script(boot_mode="bios", disk="/dev/sda", kernel_cmdline="quiet")
    assert "grub-install --target=i386-pc --recheck /dev/sda" in bios
    assert 'GRUB_CMDLINE_LINUX_DEFAULT="quiet"' in bios
    assert bios.splitlines()[-1] == "grub-mkconfig -o /boot/grub/grub.cfg"


def test_grub_script_rejects_unknown_mode():
    with pytest.raises(RuntimeError):
        render_grub_script(boot_mode="uboot", disk="/dev/sda", kernel_cmdline="")


def test_expected_boot_files():
    assert expected_boot_files("/mnt", "uefi") == ["/mnt/boot/grub/grub.cfg", "/mnt/boot/EFI/GRUB/grubx64.efi"]
    assert expected_boot_files("/mnt", "bios")[1] == "/mnt/boot/grub/i386-pc/core.img"


def test_user_script():
    script = render_user_script("tester")
    assert "useradd -m -G wheel -s /bin/bash tester" in script
    assert script.splitlines()[-1] == "chpasswd"


def test_run_in_target_tracks_and_removes_script(monkeypatch, tmp_path, fake_run_cmd):
    seen = {}

    def recording(argv, **kwargs):
        script = tmp_path / argv[-1].lstrip("/")
        seen["exists_during_run"] = script.exists()
        seen["held_during_run"] = rs.is_held(str(script))
        seen["stdin"] = kwargs.get("input_text")
        return fake_run_cmd(argv, **kwargs)

    monkeypatch.setattr("arch_installer.lib.chroot.run_cmd", recording)
    rs = RunState(total_steps=1)

    run_in_target(str(tmp_path), "echo hi", run_state=rs, label="t", stdin="root:pw\n")

    assert fake_run_cmd.calls == [["arch-chroot", str(tmp_path), "/bin/bash", "/root/arch-installer-t.sh"]]
    assert seen == {"exists_during_run": True, "held_during_run": True, "stdin": "root:pw\n"}
    assert not (tmp_path / "root/arch-installer-t.sh").exists()
    assert rs.held_resources() == []


def test_run_in_target_failure_is_all_or_nothing(monkeypatch, tmp_path, fake_run_cmd):
    argv = ("arch-chroot", str(tmp_path), "/bin/bash", "/root/arch-installer-t.sh")
    fake_run_cmd.failures[argv] = 3
    monkeypatch.setattr("arch_installer.lib.chroot.run_cmd", fake_run_cmd)
    rs = RunState(total_steps=1)

    with pytest.raises(CommandError) as exc:
        run_in_target(str(tmp_path), "false", run_state=rs, label="t")

    assert exc.value.returncode == 3
    assert not (tmp_path / "root/arch-installer-t.sh").exists()
    assert rs.held_resources() == []


def test_grub_cmdline_survives_shell_and_sed_metacharacters():
    import shlex

    script = render_grub_script(boot_mode="uefi", disk="/dev/sda", kernel_cmdline="quiet a|b it's & more")
    sed_line = next(line for line in script.splitlines() if line.startswith("sed "))

    argv = shlex.split(sed_line)
    assert argv[0:2] == ["sed", "-i"]
    assert argv[3] == "/etc/default/grub"
    assert argv[2] == 's|^GRUB_CMDLINE_LINUX_DEFAULT=.*|GRUB_CMDLINE_LINUX_DEFAULT="quiet a\\|b it\'s \\& more"|'


def test_configure_script_keeps_disk_controller_modules(install_config):
    script = render_configure_script(install_config)
    lines = script.splitlines()
    assert "sed -i 's/^MODULES=.*/MODULES=(ahci sd_mod)/' /etc/mkinitcpio.conf" in lines
    assert "systemctl enable NetworkManager systemd-modules-load systemd-udevd" in lines
    assert lines.index("mkinitcpio -P") > lines.index("sed -i 's/^MODULES=.*/MODULES=(ahci sd_mod)/' /etc/mkinitcpio.conf")
