"""
签名描述文件（`mobileprovision`）的结构化视图。

不依赖 macOS `security cms`：先用 `locator.locate` 从 CMS 封装中取出内嵌
plist，再提取签名相关字段（证书、应用标识前缀、设备列表、调试标记与
签名权限 `entitlements`）。
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import re
import zipfile
from dataclasses import dataclass, field

from cryptography import x509

from .console import warn
from .errors import InvalidCertificateData, MissingEntitlements, ParseError
from .locator import locate
from .plist_doc import PropertyListDocument

UNKNOWN = "(unknown)"

_EMBEDDED_RE = re.compile(r"^Payload/[^/]+\.app/embedded\.mobileprovision$")


@dataclass(frozen=True)
class MobileProvisionProfile:
    """描述文件中与代码签名相关的只读字段。"""

    application_identifier_prefix: str | None
    application_identifier: str
    developer_certificates: tuple[bytes, ...]
    provision_name: str
    provisioned_device_ids: tuple[str, ...]
    is_debuggable: bool
    _entitlements: PropertyListDocument = field(repr=False, compare=False)
    _data: PropertyListDocument = field(repr=False, compare=False)

    @property
    def entitlements(self) -> PropertyListDocument:
        """`Entitlements` 字典的独立副本。"""
        return self._entitlements.clone()

    @property
    def data(self) -> PropertyListDocument:
        """完整描述文件 plist 的独立副本。"""
        return self._data.clone()

    @property
    def is_distribution(self) -> bool:
        """发布用描述文件：不限制设备且不可调试。"""
        return not self.provisioned_device_ids and not self.is_debuggable

    def contains_device(self, udid: str) -> bool:
        """设备 UDID 是否在描述文件的设备列表中（不区分大小写）。"""
        want = udid.casefold()
        return any(x.casefold() == want for x in self.provisioned_device_ids)

    def certificate_sha1s(self) -> list[str]:
        """按顺序返回去重后的证书 SHA1（大写十六进制）。"""
        out: list[str] = []
        seen: set[str] = set()
        for cert in self.developer_certificates:
            fingerprint = hashlib.sha1(cert).hexdigest().upper()
            if fingerprint not in seen:
                seen.add(fingerprint)
                out.append(fingerprint)
        return out

    def entitlements_text(self, bundle_id: str) -> str:
        """生成供 codesign 使用的完整 entitlements plist 文本。

        `application-identifier` 含通配符 `*` 时，替换为
        `<前缀>.<bundle_id>`，`keychain-access-groups` 中含 `*` 的条目统一
        替换为同一个值；否则原样输出。
        """
        ent = self._entitlements.clone()
        current = ent.get_string("application-identifier") or ""
        if "*" not in current:
            return ent.to_text()

        prefix = self.application_identifier_prefix
        if prefix is None:
            prefix = current.split(".", 1)[0]
        new_id = f"{prefix}.{bundle_id}"
        ent.set_string("application-identifier", new_id)

        # Every wildcard group collapses to the same value; profiles that need
        # several distinct access groups should not use a wildcard app id.
        groups = ent.get_array("keychain-access-groups", "string")
        if groups is not None:
            ent.set_value(
                "keychain-access-groups",
                [new_id if "*" in g else g for g in groups],
            )
        return ent.to_text()


def _decode_certificates(raw_certs: object) -> tuple[bytes, ...]:
    if raw_certs is None:
        return ()
    if not isinstance(raw_certs, list):
        raise InvalidCertificateData("DeveloperCertificates is not an array")

    out: list[bytes] = []
    for i, item in enumerate(raw_certs):
        if isinstance(item, (bytes, bytearray)):
            der = bytes(item)
        elif isinstance(item, str):
            try:
                der = base64.b64decode("".join(item.split()), validate=True)
            except binascii.Error as e:
                raise InvalidCertificateData(
                    f"DeveloperCertificates[{i}] is not valid base64: {e}"
                ) from e
        else:
            raise InvalidCertificateData(
                f"DeveloperCertificates[{i}] has unexpected type {type(item).__name__}"
            )
        try:
            x509.load_der_x509_certificate(der)
        except ValueError as e:
            raise InvalidCertificateData(
                f"DeveloperCertificates[{i}] is not a valid certificate: {e}"
            ) from e
        out.append(der)
    return tuple(out)


def parse(text: str) -> MobileProvisionProfile:
    """从内嵌 plist 文本构造 `MobileProvisionProfile`。"""
    doc = PropertyListDocument.from_text(text)

    prefixes = doc.get_array("ApplicationIdentifierPrefix", "string") or []
    if len(prefixes) > 1:
        warn(
            "Found more than one entry for ApplicationIdentifierPrefix in the "
            ".mobileprovision, using the first one found"
        )
    prefix = prefixes[0] if prefixes else None

    certs = _decode_certificates(doc.get_value("DeveloperCertificates"))
    name = doc.get_string("Name") or UNKNOWN
    devices = doc.get_array("ProvisionedDevices", "string") or []

    ent = doc.clone_dict("Entitlements")
    if ent is None:
        raise MissingEntitlements("Entitlements dictionary not found in .mobileprovision")

    return MobileProvisionProfile(
        application_identifier_prefix=prefix,
        application_identifier=ent.get_string("application-identifier") or UNKNOWN,
        developer_certificates=certs,
        provision_name=name,
        provisioned_device_ids=tuple(devices),
        is_debuggable=ent.get_bool("get-task-allow"),
        _entitlements=ent,
        _data=doc,
    )


def parse_bytes(raw: bytes) -> MobileProvisionProfile:
    return parse(locate(raw))


def parse_file(path: str) -> MobileProvisionProfile:
    """读取并解析磁盘上的 `.mobileprovision` 文件。"""
    with open(path, "rb") as f:
        return parse_bytes(f.read())


def parse_ipa(path: str) -> MobileProvisionProfile:
    """解析 IPA 主应用包内的 `embedded.mobileprovision`。"""
    with zipfile.ZipFile(path) as zf:
        names = sorted(n for n in zf.namelist() if _EMBEDDED_RE.match(n))
        if not names:
            raise ParseError(f"embedded.mobileprovision not found in {path}")
        return parse_bytes(zf.read(names[0]))
