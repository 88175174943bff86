"""
在 `.mobileprovision` 的 CMS/DER 封装中定位内嵌 plist。

这里并不真正解析 ASN.1，只做启发式扫描：
1) 查找第一个 `<?xml` 标记（偏移至少为 2）。
2) 标记前两个字节为高位在前的长度字段。
3) 按该长度截取并解码为 UTF-8，再截断到最后一个 `>`。

长度字段只作为提示：截取结果不以 `</plist>` 结尾时，改用原始数据中
标记之后第一个 `</plist>` 作为边界。
"""

from __future__ import annotations

from .errors import MarkerNotFound

XML_MARKER = b"<?xml"
PLIST_END = b"</plist>"


def _declared_length(raw: bytes, start: int) -> int:
    return (raw[start - 2] << 8) | raw[start - 1]


def locate(raw: bytes) -> str:
    """从二进制数据中提取内嵌 plist 文本，找不到标记时抛出 `MarkerNotFound`。"""
    start = raw.find(XML_MARKER, 2)
    if start < 0:
        raise MarkerNotFound("Failed to find embedded plist in .mobileprovision data")

    length = _declared_length(raw, start)
    # Slicing clamps to the buffer, so a bogus length never reads past the end.
    text = raw[start:start + length].decode("utf-8", errors="replace")

    # Distribution profiles have been seen with a length one byte too long.
    cut = text.rfind(">")
    text = text[:cut + 1]

    if not text.rstrip().endswith(PLIST_END.decode()):
        end = raw.find(PLIST_END, start)
        if end >= 0:
            text = raw[start:end + len(PLIST_END)].decode("utf-8", errors="replace")
    return text
