"""
为指定 bundle id 选择兼容的签名描述文件。

匹配顺序（先成功者胜出，阶段之间不回溯）：
1) 精确匹配：`application-identifier` 包含 bundle id。
2) 通配匹配：描述文件名含 `Wildcard` 或 `application-identifier` 含 `*`。
3) 回退：暂存目录下已有的 `embedded.mobileprovision`。

每个阶段内按文件路径字典序扫描，结果可复现。发布构建要求描述文件
不限制设备且不可调试；所有候选都必须在本机找到可用证书。
"""

from __future__ import annotations

import os
from collections.abc import Callable

from .certificates import CertificateResolver, KeychainCertificateResolver, SigningIdentity
from .config import BuildConfig
from .console import log_step, warn
from .errors import NoCompatibleProvisionFound
from .library import load_provision_library, sync_provision_library
from .profile import MobileProvisionProfile

EMBEDDED_PROVISION = "embedded.mobileprovision"


def _allowed_for_mode(profile: MobileProvisionProfile, for_distribution: bool) -> bool:
    return not for_distribution or profile.is_distribution


def _is_exact(profile: MobileProvisionProfile, bundle_id: str) -> bool:
    return bundle_id in profile.application_identifier


def _is_wildcard(profile: MobileProvisionProfile, _bundle_id: str) -> bool:
    return "Wildcard" in profile.provision_name or "*" in profile.application_identifier


class _CertificateCache:
    """同一次匹配中每个描述文件最多查询一次证书。"""

    def __init__(self, resolver: CertificateResolver) -> None:
        self._resolver = resolver
        self._results: dict[str, SigningIdentity | None] = {}

    def has_certificate(self, path: str, profile: MobileProvisionProfile) -> bool:
        if path not in self._results:
            try:
                self._results[path] = self._resolver.find_certificate(profile)
            except Exception as e:
                warn(f"certificate lookup failed for {os.path.basename(path)}: {e}")
                self._results[path] = None
        return self._results[path] is not None


def _scan(
    library: dict[str, MobileProvisionProfile],
    *,
    bundle_id: str,
    for_distribution: bool,
    predicate: Callable[[MobileProvisionProfile, str], bool],
    certs: _CertificateCache,
) -> str:
    for path in sorted(library):
        profile = library[path]
        if not predicate(profile, bundle_id):
            continue
        if not _allowed_for_mode(profile, for_distribution):
            continue
        if certs.has_certificate(path, profile):
            return path
    return ""


def find_compatible_provision(
    bundle_id: str,
    library_directory: str,
    for_distribution: bool,
    *,
    resolver: CertificateResolver,
    staging_directory: str = "",
) -> str:
    """返回选中的描述文件路径；全部失败且回退文件不存在时抛出异常。"""
    library = load_provision_library(library_directory)
    certs = _CertificateCache(resolver)

    for phase, predicate in (("exact", _is_exact), ("wildcard", _is_wildcard)):
        path = _scan(
            library,
            bundle_id=bundle_id,
            for_distribution=for_distribution,
            predicate=predicate,
            certs=certs,
        )
        if path:
            log_step(f"Matched {phase} provision: {path}")
            return path

    # The embedded profile is not checked against the bundle id.
    fallback = os.path.join(staging_directory, EMBEDDED_PROVISION) if staging_directory else ""
    if fallback and os.path.isfile(fallback):
        warn(f"no matching provision in {library_directory}, falling back to {fallback}")
        return fallback

    detail = f"searched {len(library)} profile(s) in {library_directory}"
    if fallback:
        detail += f"; fallback {fallback} does not exist"
    raise NoCompatibleProvisionFound(bundle_id, for_distribution, detail)


def select_provision(
    config: BuildConfig,
    resolver: CertificateResolver | None = None,
    *,
    sync: bool = True,
) -> str:
    """打包流程入口：同步描述文件库后执行匹配。"""
    if sync:
        copied = sync_provision_library(config)
        if copied:
            log_step(f"Synced {len(copied)} provision(s) into {config.provision_directory}")
    if resolver is None:
        resolver = KeychainCertificateResolver(verbose=config.verbose)
    return find_compatible_provision(
        config.bundle_id,
        config.provision_directory,
        config.for_distribution,
        resolver=resolver,
        staging_directory=config.staging_directory,
    )
