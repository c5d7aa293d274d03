from __future__ import annotations

from pathlib import Path

import pytest
from conftest import ARCH_TREE, UBUNTU_TREE, UNKNOWN_TREE, FakeMounter

from multiboot_usb.lib.bootparams import GENERIC_BOOT_PARAMETERS
from multiboot_usb.lib.detect import DetectionResult, detect, detect_many, inspect_tree
from multiboot_usb.lib.distro import Distribution
from multiboot_usb.lib.isofs import MemoryFilesystem


def test_inspect_ubuntu(ubuntu_fs):
    r = inspect_tree(ubuntu_fs)
    assert r.distribution is Distribution.UBUNTU
    assert r.kernel_path == "/casper/vmlinuz"
    assert r.initrd_path == "/casper/initrd"
    assert "boot=casper" in r.boot_parameters
    assert r.success


def test_inspect_arch(arch_fs):
    r = inspect_tree(arch_fs)
    assert r.distribution is Distribution.ARCH
    assert r.kernel_path == "/arch/boot/x86_64/vmlinuz-linux"
    assert r.initrd_path == "/arch/boot/x86_64/archiso.img"
    assert "img_loop=" in r.boot_parameters


def test_inspect_unknown(unknown_fs):
    r = inspect_tree(unknown_fs)
    assert r.distribution is Distribution.UNKNOWN
    assert r.kernel_path == "/boot/vmlinuz"
    assert r.initrd_path is None
    assert r.boot_parameters == GENERIC_BOOT_PARAMETERS
    assert r.success


def test_missing_kernel_is_unsuccessful():
    r = inspect_tree(MemoryFilesystem({"/.disk/info": "Ubuntu 24.04", "/casper/initrd": b""}))
    assert r.distribution is Distribution.UBUNTU
    assert r.kernel_path is None
    assert r.initrd_path == "/casper/initrd"
    assert not r.success


def test_detect_mounts_inspects_and_unmounts(tmp_path, iso_files):
    (iso,) = iso_files("ubuntu-22.04.iso")
    probe = tmp_path / "probe"
    mounter = FakeMounter({"ubuntu-22.04.iso": UBUNTU_TREE})

    r = detect(iso, mount_point=str(probe), mounter=mounter)

    assert r == DetectionResult(
        distribution=Distribution.UBUNTU,
        kernel_path="/casper/vmlinuz",
        initrd_path="/casper/initrd",
        boot_parameters="boot=casper iso-scan/filename=${isofile} quiet splash",
    )
    assert [c[0] for c in mounter.calls] == ["mount", "umount"]
    assert mounter.mounted is None


def test_detect_mount_failure_returns_none(tmp_path, iso_files):
    (iso,) = iso_files("broken.iso")
    mounter = FakeMounter({}, fail={"broken.iso"})

    assert detect(iso, mount_point=str(tmp_path / "probe"), mounter=mounter) is None
    assert [c[0] for c in mounter.calls] == ["mount"]


def test_detect_missing_file_returns_none(tmp_path):
    mounter = FakeMounter({})
    assert detect(str(tmp_path / "nope.iso"), mount_point=str(tmp_path / "probe"), mounter=mounter) is None
    assert mounter.calls == []


def test_detect_unmounts_when_inspection_raises(tmp_path, iso_files):
    (iso,) = iso_files("x.iso")
    mounter = FakeMounter({"x.iso": {}})

    def boom(_mount_point):
        raise RuntimeError("inspection failed")

    with pytest.raises(RuntimeError):
        detect(iso, mount_point=str(tmp_path / "probe"), mounter=mounter, open_fs=boom)
    assert mounter.calls[-1][0] == "umount"


def test_detect_with_injected_filesystem(tmp_path, iso_files, arch_fs):
    (iso,) = iso_files("archlinux.iso")
    r = detect(
        iso,
        mount_point=str(tmp_path / "probe"),
        mounter=FakeMounter({}),
        open_fs=lambda _mp: arch_fs,
    )
    assert r is not None and r.distribution is Distribution.ARCH


def test_detect_many_continues_after_failures(tmp_path, iso_files):
    isos = iso_files("a-ubuntu.iso", "b-broken.iso", "c-arch.iso", "d-unknown.iso")
    probe = tmp_path / "probe"
    mounter = FakeMounter(
        {"a-ubuntu.iso": UBUNTU_TREE, "c-arch.iso": ARCH_TREE, "d-unknown.iso": UNKNOWN_TREE},
        fail={"b-broken.iso"},
    )

    outcomes = detect_many(isos, mount_point=str(probe), mounter=mounter)

    assert [Path(p).name for p, _ in outcomes] == ["a-ubuntu.iso", "b-broken.iso", "c-arch.iso", "d-unknown.iso"]
    results = [r for _, r in outcomes]
    assert results[0].distribution is Distribution.UBUNTU
    assert results[1] is None
    assert results[2].distribution is Distribution.ARCH
    assert results[3].distribution is Distribution.UNKNOWN
    # Probe directory is removed once the batch is done.
    assert not probe.exists()


def test_detect_is_deterministic(tmp_path, iso_files):
    (iso,) = iso_files("ubuntu.iso")
    mounter = FakeMounter({"ubuntu.iso": UBUNTU_TREE})
    first = detect(iso, mount_point=str(tmp_path / "probe"), mounter=mounter)
    second = detect(iso, mount_point=str(tmp_path / "probe"), mounter=mounter)
    assert first == second


def test_detect_many_survives_inspection_errors(tmp_path, iso_files):
    isos = iso_files("a.iso", "b.iso")
    mounter = FakeMounter({"b.iso": UBUNTU_TREE})
    calls = []

    def flaky_open(mount_point):
        calls.append(mount_point)
        if len(calls) == 1:
            raise OSError("I/O error reading ISO")
        return MemoryFilesystem(UBUNTU_TREE)

    outcomes = detect_many(isos, mount_point=str(tmp_path / "probe"), mounter=mounter, open_fs=flaky_open)

    assert outcomes[0][1] is None
    assert outcomes[1][1].distribution is Distribution.UBUNTU
    assert mounter.mounted is None


def test_unusable_mount_directory_returns_none(tmp_path, iso_files):
    (iso,) = iso_files("ubuntu.iso")
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    mounter = FakeMounter({"ubuntu.iso": UBUNTU_TREE})

    assert detect(iso, mount_point=str(blocker / "mnt"), mounter=mounter) is None
    assert mounter.calls == []
