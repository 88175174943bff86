"""
描述文件解析与匹配流程中对外暴露的异常类型。

调用方（打包流程）应将这些异常视为需要用户介入的构建失败：
安装或下载合适的签名描述文件后重试。
"""

from __future__ import annotations


class ProvisionError(RuntimeError):
    """本工具所有异常的基类。"""


class ParseError(ProvisionError):
    """单个描述文件的输入格式错误。"""


class MarkerNotFound(ParseError):
    """二进制数据中找不到内嵌 plist 的 `<?xml` 起始标记。"""


class MalformedPropertyList(ParseError):
    """内嵌 plist 文本不是合法的属性列表，或键值类型不符。"""


class MissingEntitlements(ParseError):
    """描述文件缺少 `Entitlements` 字典。"""


class InvalidCertificateData(ParseError):
    """`DeveloperCertificates` 中存在无法解析的证书。"""


class NoCompatibleProvisionFound(ProvisionError):
    """所有匹配阶段均失败，且回退用的内嵌描述文件也不存在。"""

    def __init__(self, bundle_id: str, for_distribution: bool, detail: str = "") -> None:
        self.bundle_id = bundle_id
        self.for_distribution = for_distribution
        mode = "distribution" if for_distribution else "development"
        msg = f"No compatible provisioning profile found for {bundle_id} ({mode})"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
