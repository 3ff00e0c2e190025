# src/heos_core/protocols/attributes.py
"""
HEOS 协议层 - 属性编解码 (Attribute Codec)

命令的查询参数与响应的 message 字段使用相同的线上格式:
    key=value&flag&key2=value2

- 值列表为空的键编码为裸键 (flag)。
- 同一个键可以出现多次，值按出现顺序累积。
- 不做任何 URL 转义，值按原样透传。
"""

from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

SEGMENT_SEPARATOR = "&"
VALUE_SEPARATOR = "="


class Attributes(Mapping[str, tuple[str, ...]]):
    """不可变的属性集: 属性名 -> 有序值元组。

    键的顺序即构建顺序，保证线上输出确定。
    """

    __slots__ = ("_content",)

    def __init__(self, content: Mapping[str, Iterable[str]] | None = None) -> None:
        self._content: dict[str, tuple[str, ...]] = {
            key: tuple(values) for key, values in (content or {}).items()
        }

    def __getitem__(self, key: str) -> tuple[str, ...]:
        return self._content[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._content)

    def __len__(self) -> int:
        return len(self._content)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Attributes):
            return self._content == other._content
        if isinstance(other, Mapping):
            return self._content == {k: tuple(v) for k, v in other.items()}
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._content.items()))

    def __repr__(self) -> str:
        return f"Attributes({self._content!r})"

    def __str__(self) -> str:
        return encode_attributes(self)

    def value(self, name: str) -> str | None:
        """返回属性的第一个值，属性缺失或为裸键时返回 None。"""
        values = self._content.get(name)
        return values[0] if values else None

    def int_value(self, name: str) -> int | None:
        """以整数形式返回属性的第一个值。

        Raises:
            ValueError: 值不是合法整数。
        """
        value = self.value(name)
        return int(value) if value is not None else None

    def is_empty(self) -> bool:
        return not self._content


class AttributesBuilder:
    """Attributes 的增量构建器。

    重复的键会追加新值（保留重复值及顺序），而不是覆盖。
    """

    def __init__(self) -> None:
        self._content: dict[str, list[str]] = {}

    def add(self, name: str, value: Any = None) -> "AttributesBuilder":
        """添加属性。

        Args:
            name: 属性名。
            value: None 表示裸键；list/tuple 表示多个值；其余类型转为字符串。
        """
        values = self._content.setdefault(name, [])
        if value is None:
            return self
        if isinstance(value, (list, tuple)):
            values.extend(str(v) for v in value)
        else:
            values.append(str(value))
        return self

    def add_if(
        self, name: str, condition: bool, value: Callable[[], Any]
    ) -> "AttributesBuilder":
        """仅在 condition 为真时添加属性，value 延迟求值。"""
        if condition:
            self.add(name, value())
        return self

    def merge(self, other: Mapping[str, Any]) -> "AttributesBuilder":
        """合并另一个属性集或普通字典。"""
        for name, value in other.items():
            if isinstance(value, (list, tuple)) and not value:
                self.add(name)
            else:
                self.add(name, value)
        return self

    def build(self) -> Attributes:
        return Attributes(self._content)


def encode_attributes(attributes: Mapping[str, Iterable[str]]) -> str:
    """将属性集编码为线上格式。

    空属性集编码为空字符串。
    """
    segments: list[str] = []
    for name, values in attributes.items():
        values = list(values)
        if not values:
            segments.append(name)
        else:
            segments.extend(f"{name}{VALUE_SEPARATOR}{v}" for v in values)
    return SEGMENT_SEPARATOR.join(segments)


def decode_attributes(text: str) -> Attributes:
    """将线上格式解码为属性集。

    任意字符串都是合法输入:
    - 空字符串 -> 空属性集。
    - 没有 '=' 的段 -> 裸键。
    - 只按第一个 '=' 切分，"=" 解码为 {"": [""]}。
    """
    if not text:
        return Attributes()

    content: dict[str, list[str]] = {}
    for segment in text.split(SEGMENT_SEPARATOR):
        name, sep, value = segment.partition(VALUE_SEPARATOR)
        values = content.setdefault(name, [])
        if sep:
            values.append(value)
    return Attributes(content)
