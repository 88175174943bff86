"""
有序键值属性列表（plist）文档模型。

在 `plistlib` 之上提供带类型检查的访问接口：
- 键不存在时返回 `None`（或调用方给出的默认值）。
- 键存在但类型不符时抛出 `MalformedPropertyList`，不做静默回退。
- 克隆出的子树与源文档不共享任何可变状态。
"""

from __future__ import annotations

import copy
import datetime
import plistlib
from typing import Any

from .errors import MalformedPropertyList

# 数组元素类型名到 Python 类型的映射；`bool` 是 `int` 的子类，需要单独排除。
_KINDS: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "bool": (bool,),
    "integer": (int,),
    "real": (float,),
    "data": (bytes, bytearray),
    "date": (datetime.datetime,),
    "array": (list,),
    "dict": (dict,),
}


def _is_kind(value: Any, kind: str) -> bool:
    types = _KINDS.get(kind)
    if types is None:
        raise ValueError(f"unknown plist kind: {kind}")
    if kind == "integer" and isinstance(value, bool):
        return False
    return isinstance(value, types)


class PropertyListDocument:
    """以字典为根节点的 plist 文档。"""

    def __init__(self, root: dict[str, Any]) -> None:
        if not isinstance(root, dict):
            raise MalformedPropertyList("plist root is not a dictionary")
        self._root = root

    @classmethod
    def from_text(cls, text: str) -> PropertyListDocument:
        """解析 XML plist 文本，格式错误时抛出 `MalformedPropertyList`。"""
        # plistlib raises AttributeError/IndexError on some malformed input (bad <date>, stray <key>).
        try:
            obj = plistlib.loads(text.encode("utf-8"), fmt=plistlib.FMT_XML)
        except Exception as e:
            raise MalformedPropertyList(f"invalid property list: {e}") from e
        return cls(obj)

    @classmethod
    def from_dict(cls, mapping: dict[str, Any]) -> PropertyListDocument:
        return cls(copy.deepcopy(mapping))

    def contains(self, key: str) -> bool:
        return key in self._root

    def keys(self) -> list[str]:
        return list(self._root)

    def get_value(self, key: str) -> Any:
        """返回原始值（不做类型检查），不存在时返回 `None`。"""
        return self._root.get(key)

    def _typed(self, key: str, kind: str) -> Any:
        if key not in self._root:
            return None
        value = self._root[key]
        if not _is_kind(value, kind):
            raise MalformedPropertyList(
                f"expected {kind} for key {key}, got {type(value).__name__}"
            )
        return value

    def get_string(self, key: str) -> str | None:
        return self._typed(key, "string")

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._typed(key, "bool")
        return default if value is None else value

    def get_dict(self, key: str) -> dict[str, Any] | None:
        return self._typed(key, "dict")

    def get_array(self, key: str, kind: str) -> list[Any] | None:
        """读取数组并校验每个元素都是 `kind` 类型，返回副本。"""
        arr = self._typed(key, "array")
        if arr is None:
            return None
        for i, item in enumerate(arr):
            if not _is_kind(item, kind):
                raise MalformedPropertyList(
                    f"expected {kind} at {key}[{i}], got {type(item).__name__}"
                )
        return list(arr)

    def clone(self) -> PropertyListDocument:
        return PropertyListDocument(copy.deepcopy(self._root))

    def clone_dict(self, key: str) -> PropertyListDocument | None:
        """深拷贝 `key` 处的嵌套字典为独立文档。"""
        sub = self.get_dict(key)
        if sub is None:
            return None
        return PropertyListDocument(copy.deepcopy(sub))

    def set_value(self, key: str, value: Any) -> None:
        self._root[key] = value

    def set_string(self, key: str, value: str) -> None:
        self._root[key] = value

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._root)

    def to_text(self) -> str:
        """序列化为完整的 XML plist 文档（含声明与 DOCTYPE），保持键顺序。"""
        data = plistlib.dumps(self._root, fmt=plistlib.FMT_XML, sort_keys=False)
        return data.decode("utf-8")
