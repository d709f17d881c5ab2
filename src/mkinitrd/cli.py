"""Command line entry point.

Usage:
    mkinitrd order --stages lib/mkinitrd/stages --scripts scripts
    mkinitrd modules -k 6.4.0-150600.21-default -- ext4 -usb-storage
    mkinitrd install -k 6.4.0-150600.21-default --dest /tmp/initrd --from-scripts
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from .config import InitrdConfig
from .errors import InitrdError, ModuleInstallError
from .initrd import Initrd
from .kmod import KmodQuery
from .manifest import ModuleManifest


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mkinitrd", description="initrd script and module resolver")
    parser.add_argument("--install-dir", type=Path, help="Directory holding the stage file")
    parser.add_argument("--stages", type=Path, help="Stage file (default: <install-dir>/stages)")
    parser.add_argument("--scripts", type=Path, help="Directory of setup-*/boot-* scripts")
    parser.add_argument("--log-json", type=Path, help="Write structured log records here")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("order", help="Print the leveled setup/boot script listing")

    modules_p = sub.add_parser("modules", help="Resolve the kernel module closure")
    _add_module_args(modules_p)
    modules_p.add_argument("--json", type=Path, help="Write the manifest as JSON")
    modules_p.add_argument("--cbor", type=Path, help="Write the manifest as CBOR")

    install_p = sub.add_parser("install", help="Resolve and copy modules into a staging tree")
    _add_module_args(install_p)
    install_p.add_argument("--dest", type=Path, required=True, help="Initrd staging directory")
    install_p.add_argument("--root", type=Path, help="Root filesystem to copy modules from")
    install_p.add_argument("--map", type=Path, help="System.map passed to depmod -F")
    return parser


def _add_module_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-k", "--kernel-version", required=True)
    parser.add_argument(
        "--from-scripts",
        action="store_true",
        help="Also request modules declared by boot scripts",
    )
    parser.add_argument(
        "--modprobe-config",
        type=Path,
        action="append",
        help="Source of '# SUSE INITRD:' directives (repeatable)",
    )
    parser.add_argument("--modprobe", default="/sbin/modprobe")
    parser.add_argument("--modinfo", default="/sbin/modinfo")
    # "-name" entries look like options, so they must follow "--"
    parser.add_argument("names", nargs="*", help="Module names; prefix with '-' to exclude")


def _config_from_args(args: argparse.Namespace) -> InitrdConfig:
    config = InitrdConfig()
    if args.install_dir is not None:
        config = replace(config, install_dir=args.install_dir)
    if args.stages is not None:
        config = replace(config, stage_file=args.stages)
    if args.scripts is not None:
        config = replace(config, script_dir=args.scripts)
    if getattr(args, "modprobe_config", None):
        config = replace(config, modprobe_sources=tuple(args.modprobe_config))
    if getattr(args, "root", None) is not None:
        config = replace(config, root_dir=args.root)
    return config


def _resolve(initrd: Initrd, args: argparse.Namespace) -> ModuleManifest:
    names = list(args.names)
    if args.from_scripts:
        names = initrd.requested_modules(initrd.order_scripts()) + names
    manifest = initrd.resolve_modules(args.kernel_version, names)
    if len(manifest):
        print(manifest.summary())
    return manifest


def cmd_order(initrd: Initrd, args: argparse.Namespace) -> int:
    _ = args
    order = initrd.order_scripts()
    for line in order.listing():
        print(line)
    return 0


def cmd_modules(initrd: Initrd, args: argparse.Namespace) -> int:
    manifest = _resolve(initrd, args)
    if args.json is not None:
        manifest.to_json(args.json)
    if args.cbor is not None:
        manifest.to_cbor(args.cbor)
    return 0


def cmd_install(initrd: Initrd, args: argparse.Namespace) -> int:
    manifest = _resolve(initrd, args)
    initrd.install_modules(manifest, args.dest, map_file=args.map)
    return 0


COMMANDS = {
    "order": cmd_order,
    "modules": cmd_modules,
    "install": cmd_install,
}


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    query = KmodQuery(
        modprobe=getattr(args, "modprobe", "/sbin/modprobe"),
        modinfo=getattr(args, "modinfo", "/sbin/modinfo"),
    )
    initrd = Initrd(config=_config_from_args(args), query=query)
    try:
        return COMMANDS[args.command](initrd, args)
    except ModuleInstallError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_status
    except InitrdError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        if args.log_json is not None:
            initrd.logger.to_json_lines(args.log_json)


if __name__ == "__main__":
    raise SystemExit(main())
