"""
一次构建所需的配置。

进程启动时（通常由 CLI）构造一次，之后显式传给需要它的函数；
不存在任何进程级可变全局配置。
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def default_provision_directory() -> str:
    """Xcode 默认的描述文件库目录。"""
    return os.path.expanduser("~/Library/MobileDevice/Provisioning Profiles")


@dataclass(frozen=True)
class BuildConfig:
    bundle_id: str
    provision_directory: str
    # 工程文件路径；其所在目录下的 `Build/IOS/` 会被同步到描述文件库。
    project_file: str = ""
    engine_build_directory: str = ""
    # 回退时在此目录寻找 `embedded.mobileprovision`。
    staging_directory: str = ""
    for_distribution: bool = False
    verbose: bool = False

    @property
    def project_provision_directory(self) -> str:
        if not self.project_file:
            return ""
        return os.path.join(os.path.dirname(self.project_file), "Build", "IOS")
