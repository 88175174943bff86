"""
签名证书查找：判断描述文件中的开发者证书在本机是否有可用私钥。

默认实现通过 macOS `security find-identity` 列出钥匙串中的签名身份，
再与描述文件 `DeveloperCertificates` 的 SHA1 比对。
"""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from typing import Protocol

from .console import echo_cmd, warn
from .profile import MobileProvisionProfile


@dataclass(frozen=True)
class SigningIdentity:
    """钥匙串中的一个代码签名身份。"""

    sha1: str
    name: str


class CertificateResolver(Protocol):
    def find_certificate(self, profile: MobileProvisionProfile) -> SigningIdentity | None: ...


_IDENTITY_LINE_RE = re.compile(r'^\s*\d+\)\s+([0-9A-Fa-f]{40})\s+"(.+)"\s*$')


def _run(cmd: list[str]) -> bytes:
    """执行命令并返回 stdout，失败时抛出异常。"""
    p = subprocess.run(cmd, capture_output=True, check=False)
    if p.returncode != 0:
        raise RuntimeError(f"Command failed: {' '.join(cmd)}\n{p.stderr.decode(errors='replace')}")
    return p.stdout


def parse_identities(text: str) -> list[SigningIdentity]:
    """解析 `security find-identity` 输出中的 `(sha1, name)` 行。"""
    out: list[SigningIdentity] = []
    for line in text.splitlines():
        m = _IDENTITY_LINE_RE.match(line.strip())
        if not m:
            continue
        out.append(SigningIdentity(sha1=m.group(1).upper(), name=m.group(2)))
    return out


def list_codesigning_identities(*, verbose: bool = False) -> list[SigningIdentity]:
    """列出钥匙串中可用于 codesign 的身份。"""
    cmd = ["/usr/bin/security", "find-identity", "-v", "-p", "codesigning"]
    echo_cmd(cmd, verbose=verbose)
    return parse_identities(_run(cmd).decode(errors="replace"))


class KeychainCertificateResolver:
    """基于本机钥匙串的证书查找，身份列表在首次使用时读取并缓存。"""

    def __init__(self, *, verbose: bool = False) -> None:
        self.verbose = verbose
        self._by_hash: dict[str, SigningIdentity] | None = None

    def _identities(self) -> dict[str, SigningIdentity]:
        if self._by_hash is None:
            try:
                found = list_codesigning_identities(verbose=self.verbose)
            except (OSError, RuntimeError) as e:
                # An unreadable keychain means no certificate, not a failed build.
                warn(f"failed to query codesigning identities: {e}")
                found = []
            self._by_hash = {ident.sha1: ident for ident in found}
        return self._by_hash

    def find_certificate(self, profile: MobileProvisionProfile) -> SigningIdentity | None:
        by_hash = self._identities()
        for cert_hash in profile.certificate_sha1s():
            ident = by_hash.get(cert_hash)
            if ident is not None:
                return ident
        return None
