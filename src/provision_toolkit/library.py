"""
描述文件库：同步工程/引擎自带的描述文件，并把库目录加载为
`路径 -> MobileProvisionProfile` 映射。
"""

from __future__ import annotations

import os
import shutil
import stat

from .config import BuildConfig
from .console import log_step, warn
from .errors import ParseError
from .profile import MobileProvisionProfile, parse_file

PROVISION_SUFFIX = ".mobileprovision"


def _iter_provisions_recursive(root: str) -> list[str]:
    out: list[str] = []
    for dirpath, _dirs, files in os.walk(root):
        for name in files:
            if name.lower().endswith(PROVISION_SUFFIX):
                out.append(os.path.join(dirpath, name))
    return sorted(out)


def _make_writable(path: str) -> None:
    mode = os.stat(path).st_mode
    os.chmod(path, mode | stat.S_IWUSR)


def sync_provision_library(config: BuildConfig) -> list[str]:
    """把工程与引擎目录下的描述文件复制进库目录（已存在同名文件则跳过）。

    返回新复制的目标路径列表。
    """
    library = config.provision_directory
    os.makedirs(library, exist_ok=True)

    copied: list[str] = []
    for source_dir in (config.project_provision_directory, config.engine_build_directory):
        if not source_dir or not os.path.isdir(source_dir):
            continue
        for src in _iter_provisions_recursive(source_dir):
            dst = os.path.join(library, os.path.basename(src))
            if os.path.exists(dst):
                continue
            shutil.copyfile(src, dst)
            _make_writable(dst)
            copied.append(dst)
            if config.verbose:
                log_step(f"Copied {src} -> {dst}")
    return copied


def list_provision_files(directory: str) -> list[str]:
    """列出目录（不递归）中的 `.mobileprovision` 文件，按路径排序。"""
    out: list[str] = []
    with os.scandir(directory) as it:
        for entry in it:
            if entry.is_file() and entry.name.lower().endswith(PROVISION_SUFFIX):
                out.append(entry.path)
    return sorted(out)


def load_provision_library(directory: str) -> dict[str, MobileProvisionProfile]:
    """解析库目录中的全部描述文件。

    单个文件损坏时记录警告并跳过，不影响其余文件的加载。
    """
    library: dict[str, MobileProvisionProfile] = {}
    if not os.path.isdir(directory):
        warn(f"provisioning profile directory not found: {directory}")
        return library

    for path in list_provision_files(directory):
        try:
            library[path] = parse_file(path)
        except (ParseError, OSError) as e:
            warn(f"skipping {os.path.basename(path)}: {e}")
    return library
