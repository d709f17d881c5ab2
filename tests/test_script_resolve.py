from collections.abc import Callable
from pathlib import Path

import pytest

from mkinitrd.errors import CyclicDependencyError, UnresolvedDependencyWarning
from mkinitrd.models import UnresolvedDependency
from mkinitrd.observability import StructuredLogger
from mkinitrd.scripts import DependencyResolver, ScriptCatalog, ScriptOrder, base_level
from mkinitrd.stages import StageTable


def _order(tmp_path: Path, stages: StageTable, **kwargs: object) -> ScriptOrder:
    catalog = ScriptCatalog.scan(tmp_path / "scripts", stages)
    return DependencyResolver(catalog, **kwargs).resolve()  # type: ignore[arg-type]


def test_base_levels_run_in_opposite_directions() -> None:
    assert [base_level("setup", ordinal) for ordinal in range(5)] == [1, 11, 21, 31, 41]
    assert [base_level("boot", ordinal) for ordinal in range(5)] == [91, 81, 71, 61, 51]


def test_stage_levels_without_dependencies(
    tmp_path: Path,
    stages: StageTable,
    write_script: Callable[..., Path],
) -> None:
    write_script("setup-prepare.sh", "#%stage: boot")
    write_script("setup-network.sh", "#%stage: network")
    write_script("boot-mount.sh", "#%stage: filesystem")
    write_script("boot-start.sh", "#%stage: boot")

    order = _order(tmp_path, stages)

    assert order.level_of("setup", "prepare") == 1
    assert order.level_of("setup", "network") == 31
    assert order.level_of("boot", "mount") == 51
    assert order.level_of("boot", "start") == 91
    assert order.unresolved == ()


def test_dependency_raises_level_above_provider(
    tmp_path: Path,
    stages: StageTable,
    write_script: Callable[..., Path],
) -> None:
    write_script("setup-early.sh", "#%stage: boot", "#%depends: hotplug")
    write_script("setup-udev.sh", "#%stage: udev", "#%provides: hotplug")

    order = _order(tmp_path, stages)

    assert order.level_of("setup", "udev") == 21
    assert order.level_of("setup", "early") == 22


def test_dependency_keeps_stage_level_when_already_higher(
    tmp_path: Path,
    stages: StageTable,
    write_script: Callable[..., Path],
) -> None:
    write_script("setup-late.sh", "#%stage: filesystem", "#%depends: udev")
    write_script("setup-udev.sh", "#%stage: udev")

    order = _order(tmp_path, stages)

    assert order.level_of("setup", "late") == 41


def test_boot_section_dependency_and_listing(
    tmp_path: Path,
    stages: StageTable,
    write_script: Callable[..., Path],
) -> None:
    write_script("boot-rootfs.sh", "#%stage: filesystem", "#%depends: udev")
    write_script("boot-udev.sh", "#%stage: udev")
    write_script("boot-start.sh", "#%stage: boot")
    write_script("setup-prepare.sh", "#%stage: boot")

    order = _order(tmp_path, stages)

    assert order.listing() == [
        "setup/01-prepare.sh",
        "boot/71-udev.sh",
        "boot/72-rootfs.sh",
        "boot/91-start.sh",
    ]


def test_level_exceeds_every_provider_through_a_chain(
    tmp_path: Path,
    stages: StageTable,
    write_script: Callable[..., Path],
) -> None:
    write_script("setup-a.sh", "#%stage: boot", "#%depends: b")
    write_script("setup-b.sh", "#%stage: boot", "#%depends: c")
    write_script("setup-c.sh", "#%stage: device", "#%provides: storage")
    write_script("setup-d.sh", "#%stage: udev", "#%provides: storage")
    write_script("setup-e.sh", "#%stage: boot", "#%depends: storage")

    order = _order(tmp_path, stages)

    assert order.level_of("setup", "c") == 11
    assert order.level_of("setup", "b") == 12
    assert order.level_of("setup", "a") == 13
    assert order.level_of("setup", "e") == 22


def test_ties_keep_scan_order(
    tmp_path: Path,
    stages: StageTable,
    write_script: Callable[..., Path],
) -> None:
    write_script("setup-b.sh", "#%stage: udev")
    write_script("setup-a.sh", "#%stage: udev")
    write_script("setup-c.sh", "#%stage: boot")

    order = _order(tmp_path, stages)

    assert [entry.script.name for entry in order.setup] == ["c", "a", "b"]


def test_unresolved_dependency_is_reported_and_resolution_continues(
    tmp_path: Path,
    stages: StageTable,
    write_script: Callable[..., Path],
) -> None:
    write_script("boot-net.sh", "#%stage: network", "#%depends: dhcp udev")
    write_script("boot-udev.sh", "#%stage: udev")
    logger = StructuredLogger()

    with pytest.warns(UnresolvedDependencyWarning) as record:
        order = _order(tmp_path, stages, logger=logger)

    message = str(record[0].message)
    assert "net" in message
    assert "dhcp" in message
    assert order.unresolved == (
        UnresolvedDependency(section="boot", script="net", capability="dhcp"),
    )
    assert order.level_of("boot", "net") == 72
    assert logger.warnings()[0]["extra"] == {"capability": "dhcp"}


def test_capabilities_do_not_cross_sections(
    tmp_path: Path,
    stages: StageTable,
    write_script: Callable[..., Path],
) -> None:
    write_script("setup-net.sh", "#%stage: network", "#%depends: udev")
    write_script("boot-udev.sh", "#%stage: udev")

    with pytest.warns(UnresolvedDependencyWarning):
        order = _order(tmp_path, stages)

    assert order.level_of("setup", "net") == 31


def test_cycle_is_fatal(
    tmp_path: Path,
    stages: StageTable,
    write_script: Callable[..., Path],
) -> None:
    write_script("setup-a.sh", "#%stage: boot", "#%depends: b")
    write_script("setup-b.sh", "#%stage: boot", "#%depends: c")
    write_script("setup-c.sh", "#%stage: boot", "#%depends: a")

    with pytest.raises(CyclicDependencyError) as excinfo:
        _order(tmp_path, stages)

    assert excinfo.value.cycle == ("a", "b", "c", "a")
    assert excinfo.value.code == "E_CYCLIC_DEPENDENCY"


def test_script_providing_its_own_dependency_is_not_a_cycle(
    tmp_path: Path,
    stages: StageTable,
    write_script: Callable[..., Path],
) -> None:
    write_script("boot-md.sh", "#%stage: device", "#%provides: raid", "#%depends: raid")
    write_script("boot-dm.sh", "#%stage: udev", "#%provides: raid")

    order = _order(tmp_path, stages)

    assert order.level_of("boot", "dm") == 71
    assert order.level_of("boot", "md") == 81


def test_each_script_is_leveled_once(
    tmp_path: Path,
    stages: StageTable,
    write_script: Callable[..., Path],
) -> None:
    write_script("setup-a.sh", "#%stage: boot", "#%depends: base")
    write_script("setup-b.sh", "#%stage: boot", "#%depends: base")
    write_script("setup-base.sh", "#%stage: device")
    logger = StructuredLogger()

    _order(tmp_path, stages, logger=logger)

    resolved = [record["script"] for record in logger.records if record["operation"] == "resolve"]
    assert sorted(resolved) == ["a", "b", "base"]
