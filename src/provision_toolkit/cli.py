"""
`provision-toolkit` 的命令行入口模块。

子命令：
- `find`：为 bundle id 从描述文件库中选出兼容的描述文件。
- `inspect`：查看 `.mobileprovision` 或 IPA 内嵌描述文件的关键信息。
- `entitlements`：按 bundle id 生成签名用 entitlements plist。
"""

import argparse
import os
from collections.abc import Sequence

from .config import BuildConfig, default_provision_directory
from .console import log_step
from .errors import ProvisionError
from .matcher import select_provision
from .profile import MobileProvisionProfile, parse_file, parse_ipa


def _abs(p: str) -> str:
    """将输入路径展开为绝对路径。"""
    return os.path.abspath(os.path.expanduser(p))


def _load_profile(path: str) -> MobileProvisionProfile:
    """按扩展名加载描述文件或 IPA 中的内嵌描述文件。"""
    if not os.path.isfile(path):
        raise SystemExit(f"Error: file not found: {path}")
    try:
        if path.lower().endswith(".ipa"):
            return parse_ipa(path)
        return parse_file(path)
    except ProvisionError as e:
        raise SystemExit(f"Error: failed to parse {path}.\nDetail: {e}") from e


def _write_text(path: str, text: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def print_profile_info(path: str, profile: MobileProvisionProfile) -> None:
    """以人类可读格式打印描述文件关键信息。"""
    print(f"Profile  : {path}")
    print(f"Name     : {profile.provision_name}")
    print(f"AppID    : {profile.application_identifier}")
    print(f"Prefix   : {profile.application_identifier_prefix or '(none)'}")
    print(f"Debug    : {'yes' if profile.is_debuggable else 'no'}")
    print(f"Kind     : {'distribution' if profile.is_distribution else 'development'}")
    print(f"Devices  : {len(profile.provisioned_device_ids)}")
    for udid in profile.provisioned_device_ids:
        print(f"  - {udid}")
    print(f"Certs    : {len(profile.developer_certificates)}")
    for fingerprint in profile.certificate_sha1s():
        print(f"  - {fingerprint}")


def _cmd_find(ns: argparse.Namespace) -> int:
    config = BuildConfig(
        bundle_id=ns.bundle_id,
        provision_directory=_abs(ns.library) if ns.library else default_provision_directory(),
        project_file=_abs(ns.project_file) if ns.project_file else "",
        engine_build_directory=_abs(ns.engine_build_dir) if ns.engine_build_dir else "",
        staging_directory=_abs(ns.staging_dir) if ns.staging_dir else "",
        for_distribution=bool(ns.distribution),
        verbose=bool(ns.verbose),
    )
    mode = "distribution" if config.for_distribution else "development"
    log_step(f"Finding {mode} provision for {config.bundle_id} in {config.provision_directory}")

    try:
        path = select_provision(config, sync=not ns.no_sync)
    except ProvisionError as e:
        raise SystemExit(
            f"Error: {e}\n"
            "Hint: install or download a provisioning profile for this bundle id.\n"
        ) from e

    if ns.entitlements:
        out = _abs(ns.entitlements)
        profile = _load_profile(path)
        _write_text(out, profile.entitlements_text(config.bundle_id))
        log_step(f"Wrote entitlements: {out}")

    print(path)
    return 0


def _cmd_inspect(ns: argparse.Namespace) -> int:
    path = _abs(ns.path)
    print_profile_info(path, _load_profile(path))
    return 0


def _cmd_entitlements(ns: argparse.Namespace) -> int:
    path = _abs(ns.path)
    text = _load_profile(path).entitlements_text(ns.bundle_id)
    if ns.output:
        out = _abs(ns.output)
        _write_text(out, text)
        log_step(f"Wrote entitlements: {out}")
    else:
        print(text, end="")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """构建并返回 `provision-toolkit` 命令行参数解析器。"""
    p = argparse.ArgumentParser(
        prog="provision-toolkit",
        formatter_class=argparse.RawTextHelpFormatter,
        description=(
            "Parse .mobileprovision files and pick a compatible provisioning profile\n"
            "for a bundle id, without macOS `security cms`."
        ),
    )
    sub = p.add_subparsers(dest="command", required=True)

    f = sub.add_parser("find", help="Select a provisioning profile for a bundle id")
    f.add_argument("-b", "--bundle-id", required=True, help="CFBundleIdentifier to match")
    f.add_argument(
        "--library",
        default="",
        help="Provisioning profile library directory\n"
             "(default: ~/Library/MobileDevice/Provisioning Profiles)",
    )
    f.add_argument("--distribution", action="store_true",
                   help="Only accept distribution profiles (no devices, not debuggable)")
    f.add_argument("--project-file", default="",
                   help="Project file; profiles under <dir>/Build/IOS/ are synced into the library")
    f.add_argument("--engine-build-dir", default="",
                   help="Engine build directory whose profiles are synced into the library")
    f.add_argument("--staging-dir", default="",
                   help="Staging directory holding a fallback embedded.mobileprovision")
    f.add_argument("--no-sync", action="store_true", help="Skip copying project/engine profiles")
    f.add_argument("-e", "--entitlements", default="",
                   help="Also write entitlements plist for the selected profile to this path")
    f.add_argument("--verbose", action="store_true", help="Verbose logging")
    f.set_defaults(func=_cmd_find)

    i = sub.add_parser("inspect", help="Print key fields of a .mobileprovision or .ipa")
    i.add_argument("path", help="Path to .mobileprovision or .ipa")
    i.set_defaults(func=_cmd_inspect)

    e = sub.add_parser("entitlements", help="Generate entitlements plist for a bundle id")
    e.add_argument("path", help="Path to .mobileprovision or .ipa")
    e.add_argument("-b", "--bundle-id", required=True, help="CFBundleIdentifier")
    e.add_argument("-o", "--output", default="", help="Output plist path (default: stdout)")
    e.set_defaults(func=_cmd_entitlements)

    return p


def main(argv: Sequence[str] | None = None) -> int:
    """CLI 入口：解析参数并分派到子命令。"""
    parser = build_parser()
    ns = parser.parse_args(argv)
    return ns.func(ns)
