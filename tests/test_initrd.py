"""End-to-end pipeline tests against a fake module database."""

from collections.abc import Callable
from pathlib import Path

import pytest
from conftest import KVER, FakeModuleQuery, kpath

from mkinitrd import Initrd, InitrdConfig

EXT4 = kpath("fs", "ext4", "ext4.ko")
JBD2 = kpath("fs", "jbd2", "jbd2.ko")
DM_CRYPT = kpath("drivers", "md", "dm-crypt.ko")
AES = kpath("crypto", "aes_generic.ko")


@pytest.fixture
def initrd(tmp_path: Path, fake_query: FakeModuleQuery) -> Initrd:
    stage_file = tmp_path / "stages"
    stage_file.write_text("boot\ndevice\nudev\nnetwork\nfilesystem\n", encoding="utf-8")
    modprobe_d = tmp_path / "modprobe.d"
    modprobe_d.mkdir()
    (modprobe_d / "50-crypt.conf").write_text(
        "# SUSE INITRD: dm-crypt REQUIRES aes_generic\n",
        encoding="utf-8",
    )
    fake_query.depends = {"ext4": (JBD2, EXT4), "dm-crypt": (DM_CRYPT,)}
    fake_query.filenames = {"aes_generic": AES}
    config = InitrdConfig(
        stage_file=stage_file,
        script_dir=tmp_path / "scripts",
        modprobe_sources=(modprobe_d,),
    )
    return Initrd(config=config, query=fake_query)


def test_requested_modules_follow_boot_script_order(
    initrd: Initrd,
    write_script: Callable[..., Path],
) -> None:
    write_script("boot-luks.sh", "#%stage: device", "#%modules: dm-crypt")
    write_script("boot-rootfs.sh", "#%stage: filesystem", "#%modules: ext4 dm-crypt")
    write_script("setup-rootfs.sh", "#%stage: filesystem", "#%modules: ignored")

    order = initrd.order_scripts()

    assert initrd.requested_modules(order) == ["ext4", "dm-crypt"]


def test_pipeline_merges_declared_dependencies(
    initrd: Initrd,
    write_script: Callable[..., Path],
) -> None:
    write_script("boot-luks.sh", "#%stage: device", "#%modules: dm-crypt")
    write_script("boot-rootfs.sh", "#%stage: filesystem", "#%modules: ext4")

    order = initrd.order_scripts()
    manifest = initrd.resolve_modules(KVER, initrd.requested_modules(order))

    assert manifest.names() == ("jbd2", "ext4", "dm-crypt", "aes_generic")
    assert initrd.depdb.loaded is True


def test_logger_collects_records_from_every_step(
    initrd: Initrd,
    write_script: Callable[..., Path],
) -> None:
    write_script("boot-rootfs.sh", "#%stage: filesystem", "#%modules: ext4")

    initrd.resolve_modules(KVER, initrd.requested_modules(initrd.order_scripts()))

    operations = {record["operation"] for record in initrd.logger.records}
    assert {"scan", "resolve", "gather_modules", "probe_support", "resolve_modules"} <= operations
    assert initrd.logger.records_for_section("boot")
