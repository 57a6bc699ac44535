"""Format-preserving TOML document.

``tomllib`` (``tomli`` before Python 3.11) validates the text and supplies
the semantic values. A lightweight scanner walks the same text and records
where every value and table lives, keyed by its full key path, so edits can
splice single value tokens without re-serializing anything else. After each
edit the text is parsed again, so the indices always describe the current
text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

try:  # Python 3.11+
    import tomllib  # type: ignore[import-not-found]
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]

from errors import ValidationError

logger = logging.getLogger(__name__)

KeyPath = Tuple[str, ...]

_BARE_KEY_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_BARE_CHARS = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-")
_SCALAR_STOP = frozenset(",}]#\r\n")
_ESCAPES = {"b": "\b", "t": "\t", "n": "\n", "f": "\f", "r": "\r", '"': '"', "\\": "\\"}


@dataclass
class ValueSpan:
    """Source slice ``text[start:end]`` holding one value token."""
    start: int
    end: int
    kind: str  # string | table | array | scalar
    quote: Optional[str] = None


@dataclass
class TableSpan:
    """Where a table lives and where a new entry line would go.

    ``key_prefix`` is set for tables only defined through dotted keys at the
    document root (``versions.x = "1"``); new keys must then carry it.
    """
    path: KeyPath
    start: int
    insert_at: int
    inline: bool = False
    indent: str = ""
    key_prefix: str = ""


class _ScanError(Exception):
    pass


class _Scanner:
    """Single pass over TOML text recording value and table positions."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.values: Dict[KeyPath, ValueSpan] = {}
        self.tables: Dict[KeyPath, TableSpan] = {}

    # low level helpers

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        return self.text[idx] if idx < len(self.text) else ""

    def _startswith(self, token: str) -> bool:
        return self.text.startswith(token, self.pos)

    def _skip_ws(self) -> None:
        while self._peek() in (" ", "\t") and self._peek():
            self.pos += 1

    def _skip_comment(self) -> None:
        if self._peek() == "#":
            while self._peek() and self._peek() not in ("\n", "\r"):
                self.pos += 1

    def _skip_newline(self) -> bool:
        if self._startswith("\r\n"):
            self.pos += 2
            return True
        if self._peek() == "\n":
            self.pos += 1
            return True
        return False

    def _skip_blank(self) -> None:
        """Skip whitespace, newlines and comments."""
        while self.pos < len(self.text):
            start = self.pos
            self._skip_ws()
            self._skip_comment()
            self._skip_newline()
            if self.pos == start:
                return

    def _finish_line(self) -> None:
        self._skip_ws()
        self._skip_comment()
        self._skip_newline()

    def _expect(self, token: str) -> None:
        if not self._startswith(token):
            raise _ScanError(f"expected {token!r} at offset {self.pos}")
        self.pos += len(token)

    # strings and keys

    def _read_string(self) -> Tuple[str, str]:
        """Read a string token and return (decoded value, quote style)."""
        for quote in ('"""', "'''"):
            if self._startswith(quote):
                return self._read_multiline(quote), quote
        quote = self._peek()
        self.pos += 1
        chars: List[str] = []
        while True:
            ch = self._peek()
            if not ch or ch in ("\n", "\r"):
                raise _ScanError("unterminated string")
            self.pos += 1
            if ch == quote:
                return "".join(chars), quote
            if ch == "\\" and quote == '"':
                chars.append(self._read_escape())
            else:
                chars.append(ch)

    def _read_escape(self) -> str:
        ch = self._peek()
        self.pos += 1
        if ch in _ESCAPES:
            return _ESCAPES[ch]
        if ch in ("u", "U"):
            width = 4 if ch == "u" else 8
            digits = self.text[self.pos:self.pos + width]
            self.pos += width
            return chr(int(digits, 16))
        raise _ScanError(f"invalid escape at offset {self.pos}")

    def _read_multiline(self, quote: str) -> str:
        self.pos += 3
        begin = self.pos
        while True:
            idx = self.text.find(quote, self.pos)
            if idx < 0:
                raise _ScanError("unterminated multiline string")
            if quote == '"""':
                backslashes = 0
                j = idx - 1
                while j >= begin and self.text[j] == "\\":
                    backslashes += 1
                    j -= 1
                if backslashes % 2:
                    self.pos = idx + 1
                    continue
            end = idx + 3
            # Up to two quotes may sit directly before the closing delimiter
            extra = 0
            while extra < 2 and self.text.startswith(quote[0], end + extra):
                extra += 1
            self.pos = end + extra
            return self.text[begin:idx + extra]

    def _read_key(self) -> KeyPath:
        parts: List[str] = []
        while True:
            self._skip_ws()
            ch = self._peek()
            if ch in ('"', "'"):
                value, _ = self._read_string()
                parts.append(value)
            else:
                start = self.pos
                while self._peek() and self._peek() in _BARE_CHARS:
                    self.pos += 1
                if self.pos == start:
                    raise _ScanError(f"expected key at offset {start}")
                parts.append(self.text[start:self.pos])
            self._skip_ws()
            if self._peek() == ".":
                self.pos += 1
                continue
            return tuple(parts)

    # values

    def _read_value(self, path: Optional[KeyPath]) -> None:
        start = self.pos
        ch = self._peek()
        if ch in ('"', "'"):
            _, quote = self._read_string()
            self._record(path, ValueSpan(start, self.pos, "string", quote))
        elif ch == "{":
            self._read_inline_table(path)
            self._record(path, ValueSpan(start, self.pos, "table"))
        elif ch == "[":
            self._read_array()
            self._record(path, ValueSpan(start, self.pos, "array"))
        else:
            while self._peek() and self._peek() not in _SCALAR_STOP:
                self.pos += 1
            end = self.pos
            while end > start and self.text[end - 1] in (" ", "\t"):
                end -= 1
            if end == start:
                raise _ScanError(f"expected value at offset {start}")
            self._record(path, ValueSpan(start, end, "scalar"))

    def _record(self, path: Optional[KeyPath], span: ValueSpan) -> None:
        if path is not None:
            self.values[path] = span

    def _read_inline_table(self, path: Optional[KeyPath]) -> None:
        start = self.pos
        self._expect("{")
        if path is not None:
            self.tables[path] = TableSpan(path, start, start + 1, inline=True)
        while True:
            self._skip_blank()
            if self._peek() == "}":
                self.pos += 1
                return
            key = self._read_key()
            self._expect("=")
            self._skip_ws()
            self._read_value(path + key if path is not None else None)
            self._skip_blank()
            if self._peek() == ",":
                self.pos += 1
            elif self._peek() != "}":
                raise _ScanError(f"expected ',' or '}}' at offset {self.pos}")

    def _read_array(self) -> None:
        self._expect("[")
        while True:
            self._skip_blank()
            if self._peek() == "]":
                self.pos += 1
                return
            self._read_value(None)
            self._skip_blank()
            if self._peek() == ",":
                self.pos += 1
            elif self._peek() != "]":
                raise _ScanError(f"expected ',' or ']' at offset {self.pos}")

    # document level

    def scan(self) -> None:
        current: Optional[KeyPath] = ()
        self.tables[()] = TableSpan((), 0, 0)
        while True:
            self._skip_blank()
            if self.pos >= len(self.text):
                return
            if self._peek() == "[":
                current = self._read_header()
                continue
            line_start = self.text.rfind("\n", 0, self.pos) + 1
            key_start = self.pos
            key = self._read_key()
            self._expect("=")
            self._skip_ws()
            full = current + key if current is not None else None
            self._read_value(full)
            self._finish_line()
            if current is None:
                continue
            indent = self.text[line_start:key_start]
            self._touch(current, indent)
            if current == () and len(key) > 1:
                implicit = self.tables.get(key[:1])
                if implicit is None:
                    implicit = TableSpan(key[:1], key_start, self.pos, key_prefix=key[0] + ".")
                    self.tables[key[:1]] = implicit
                if implicit.key_prefix:
                    implicit.insert_at = self.pos
                    implicit.indent = indent

    def _touch(self, table: KeyPath, indent: str) -> None:
        span = self.tables.get(table)
        if span is not None and not span.inline:
            span.insert_at = self.pos
            span.indent = indent

    def _read_header(self) -> Optional[KeyPath]:
        start = self.pos
        if self._startswith("[["):
            self.pos += 2
            self._read_key()
            self._expect("]]")
            self._finish_line()
            # Arrays of tables are validated but not indexed
            return None
        self.pos += 1
        key = self._read_key()
        self._expect("]")
        self._finish_line()
        self.tables[key] = TableSpan(key, start, self.pos)
        return key


def format_key(key: str) -> str:
    """Render a key part, quoting it when it is not a bare key."""
    return key if _BARE_KEY_RE.match(key) else format_string(key)


def format_string(value: str) -> str:
    """Render a TOML basic string."""
    out = ['"']
    for ch in value:
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\t":
            out.append("\\t")
        elif ch == "\r":
            out.append("\\r")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def format_inline_table(pairs: List[Tuple[str, str]]) -> str:
    """Render ``{ k = v, ... }`` from (rendered key, rendered value) pairs."""
    body = ", ".join(f"{key} = {value}" for key, value in pairs)
    return "{ " + body + " }"


class TomlDocument:
    """Editable TOML text with source positions for every key path."""

    def __init__(self, text: str):
        self._text = text
        self.newline = "\r\n" if "\r\n" in text else "\n"
        self.data: Dict[str, Any] = {}
        self.values: Dict[KeyPath, ValueSpan] = {}
        self.tables: Dict[KeyPath, TableSpan] = {}
        self._index()

    @property
    def text(self) -> str:
        return self._text

    def render(self) -> str:
        """Serialize the document; untouched regions are the original bytes."""
        return self._text

    def _index(self) -> None:
        try:
            self.data = tomllib.loads(self._text)
        except tomllib.TOMLDecodeError as exc:
            raise ValidationError(f"Invalid TOML: {exc}") from exc
        scanner = _Scanner(self._text)
        try:
            scanner.scan()
        except (_ScanError, ValueError) as exc:
            raise ValidationError(f"Unsupported TOML layout: {exc}") from exc
        self.values = scanner.values
        self.tables = scanner.tables

    def _splice(self, start: int, end: int, replacement: str) -> None:
        previous = self._text
        self._text = previous[:start] + replacement + previous[end:]
        try:
            self._index()
        except ValidationError:
            self._text = previous
            self._index()
            raise

    def get(self, path: KeyPath, default: Any = None) -> Any:
        """Semantic value at ``path`` or ``default``."""
        node: Any = self.data
        for part in path:
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def span(self, path: KeyPath) -> Optional[ValueSpan]:
        return self.values.get(path)

    def has_table(self, path: KeyPath) -> bool:
        return path in self.tables

    def is_inline_table(self, name: str) -> bool:
        """True when top-level table ``name`` is written as ``name = { ... }``."""
        span = self.tables.get((name,))
        return span is not None and span.inline

    def set_string(self, path: KeyPath, value: str) -> None:
        """Replace the string at ``path`` keeping its quote style.

        Raises:
            KeyError: when no string value exists at ``path``.
        """
        span = self.values.get(path)
        if span is None or span.kind != "string":
            raise KeyError(".".join(path))
        quote = span.quote or '"'
        if quote in ("'", "'''") and ("'" in value or "\n" in value):
            token = format_string(value)
        elif quote in ("'", "'''"):
            token = f"{quote}{value}{quote}"
        elif quote == '"""' and '"' not in value and "\\" not in value:
            token = f'"""{value}"""'
        else:
            token = format_string(value)
        if self._text[span.start:span.end] == token:
            return
        logger.debug("Rewriting %s", ".".join(path))
        self._splice(span.start, span.end, token)

    def ensure_table(self, name: str) -> None:
        """Append ``[name]`` at the end of the document unless it exists."""
        if (name,) in self.tables:
            return
        nl = self.newline
        text = self._text
        if text and not text.endswith(("\n", "\r")):
            prefix = nl + nl
        elif text and not text.endswith(nl + nl) and text.strip():
            prefix = nl
        else:
            prefix = ""
        header = f"{prefix}[{format_key(name)}]{nl}"
        self._splice(len(text), len(text), header)

    def insert_entry(self, table: str, key: str, value_text: str) -> None:
        """Insert ``key = value_text`` after the last entry of ``table``.

        Raises:
            KeyError: when the table does not exist.
        """
        span = self.tables.get((table,))
        if span is None or span.inline:
            raise KeyError(table)
        at = span.insert_at
        line = f"{span.indent}{span.key_prefix}{format_key(key)} = {value_text}{self.newline}"
        if at > 0 and self._text[at - 1] not in ("\n", "\r"):
            line = self.newline + line
        self._splice(at, at, line)
