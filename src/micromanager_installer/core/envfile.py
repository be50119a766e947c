"""
Structured model of a ``KEY=value`` environment document.

Lines are kept in order as comments, blanks or key/value pairs so the
installer can rewrite individual keys, strip whole blocks and serialize the
result again. Values are decoded with python-dotenv. Plain and single-quoted
values read back verbatim in python-dotenv and ``docker compose``. A value
holding a single quote, a backslash or a newline has to be double-quoted, and
``docker compose`` still expands ``$`` inside double quotes.
"""

from __future__ import annotations

import io
import re
from collections.abc import Iterator
from dataclasses import dataclass

from dotenv import dotenv_values

_PLAIN_VALUE = re.compile(r"^[A-Za-z0-9_./:@%+,=\-]*$")
_KEY = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=")


def encode_value(value: str) -> str:
    """Quote a value so it survives a dotenv round trip unchanged."""
    if _PLAIN_VALUE.match(value):
        return value
    if "'" not in value and "\\" not in value and "\n" not in value and "\r" not in value:
        return f"'{value}'"
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def decode_line(line: str) -> tuple[str, str] | None:
    """Return ``(key, value)`` for an assignment line, None for anything else."""
    match = _KEY.match(line.strip())
    if not match:
        return None
    key = match.group(1)
    values = dotenv_values(stream=io.StringIO(line), interpolate=False)
    value = values.get(key)
    return key, value if value is not None else ""


@dataclass(frozen=True, slots=True)
class EnvLine:
    """Single line of an env document; ``key`` is None for comments and blanks."""

    text: str
    key: str | None = None
    value: str | None = None

    @classmethod
    def pair(cls, key: str, value: str) -> EnvLine:
        return cls(text=f"{key}={encode_value(value)}", key=key, value=value)

    @classmethod
    def comment(cls, text: str) -> EnvLine:
        return cls(text=f"# {text}" if text else "#")

    @property
    def is_blank(self) -> bool:
        return self.key is None and not self.text.strip()


class EnvDocument:
    """Ordered, editable env document."""

    def __init__(self, lines: list[EnvLine] | None = None) -> None:
        self._lines: list[EnvLine] = list(lines or [])

    @classmethod
    def loads(cls, text: str) -> EnvDocument:
        lines: list[EnvLine] = []
        for raw in text.splitlines():
            stripped = raw.strip()
            decoded = None if stripped.startswith("#") else decode_line(raw)
            if decoded is None:
                lines.append(EnvLine(text=raw.rstrip()))
            else:
                key, value = decoded
                lines.append(EnvLine(text=raw.rstrip(), key=key, value=value))
        return cls(lines)

    def dumps(self) -> str:
        lines = list(self._lines)
        while lines and lines[-1].is_blank:
            lines.pop()
        return "\n".join(line.text for line in lines) + "\n"

    def copy(self) -> EnvDocument:
        return EnvDocument(self._lines)

    def __iter__(self) -> Iterator[EnvLine]:
        return iter(self._lines)

    def get(self, key: str, default: str | None = None) -> str | None:
        for line in self._lines:
            if line.key == key:
                return line.value
        return default

    def set(self, key: str, value: str) -> None:
        """Replace the first assignment of ``key`` in place, or append one."""
        replaced = False
        updated: list[EnvLine] = []
        for line in self._lines:
            if line.key == key:
                if not replaced:
                    updated.append(EnvLine.pair(key, value))
                    replaced = True
                continue
            updated.append(line)
        if not replaced:
            updated.append(EnvLine.pair(key, value))
        self._lines = updated

    def add(self, key: str, value: str) -> None:
        self._lines.append(EnvLine.pair(key, value))

    def add_comment(self, text: str) -> None:
        self._lines.append(EnvLine.comment(text))

    def add_blank(self) -> None:
        self._lines.append(EnvLine(text=""))

    def remove(
        self,
        *,
        key_pattern: re.Pattern[str] | None = None,
        comment_pattern: re.Pattern[str] | None = None,
    ) -> int:
        """Drop matching assignments and comments; return the number removed."""
        kept: list[EnvLine] = []
        for line in self._lines:
            if line.key is not None and key_pattern and key_pattern.match(line.key):
                continue
            if line.key is None and comment_pattern and comment_pattern.match(line.text.strip()):
                continue
            kept.append(line)
        removed = len(self._lines) - len(kept)
        self._lines = kept
        return removed


__all__ = ["EnvDocument", "EnvLine", "decode_line", "encode_value"]
