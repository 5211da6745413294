from __future__ import annotations
import re
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from ..debug_util import trace_enabled

"""Subversion cached-credential file parser

The svn.simple store keeps one file per cached credential. Each file is a
flat run of length-prefixed key/value pairs:

    K 8
    username
    V 5
    alice
    END

"K <n>" announces that the next line holds a key name of n characters,
"V <n>" does the same for the value. "END" right before a new key
definition closes the record stream. Lines whose first non-blank character
is '#' are comments.

Only this flat subset is understood. Anything else (nested hashes, escaped
content, values spanning several physical lines) is rejected, since the
format is reverse engineered and a strict reject is safer than guessing.
"""

# Hard ceiling on physical lines inspected per file (comments/blanks included)
MAX_LINES = 1000

# Sentinel for "no length announced"
UNSET_LENGTH = -1

END_MARKER = 'END'
COMMENT_PREFIX = '#'

# Length token of a definition line: ASCII digits only, no sign
LENGTH_RE = re.compile(r"[0-9]+")


class ParseState(Enum):
    EXPECTING_KEY_DEF = 'expecting_key_def'
    EXPECTING_KEY_NAME = 'expecting_key_name'
    EXPECTING_VALUE_DEF = 'expecting_value_def'
    EXPECTING_VALUE = 'expecting_value'


class AuthParseError(Exception):
    """Base class for failures while reading one credential file.

    line_num is the 1-based physical line that broke the grammar, or None
    when the input ran out (or hit MAX_LINES) before END.
    """

    def __init__(self, path: str, line_num: Optional[int] = None):
        self.path = str(path)
        self.line_num = line_num
        super().__init__(self.message)

    @property
    def message(self) -> str:
        if self.line_num is not None:
            return f"Error parsing line {self.line_num} of {self.path}"
        return f"Error parsing {self.path} (unexpected end of file)"

    def __str__(self) -> str:
        return self.message


class MalformedRecord(AuthParseError):
    """The current line violates the grammar for the active state."""

    def __init__(self, path: str, line_num: int):
        super().__init__(path, line_num)


class UnexpectedEndOfInput(AuthParseError):
    """Input exhausted or MAX_LINES reached before a valid END."""

    def __init__(self, path: str):
        super().__init__(path, None)


class AuthFileParser:
    def __init__(self):
        """One instance per file; nothing here is shared across files."""
        self.state = ParseState.EXPECTING_KEY_DEF
        self.key_name = ''
        self.next_length = UNSET_LENGTH
        self.props: Dict[str, str] = {}
        self._handlers = {
            ParseState.EXPECTING_KEY_DEF: self._parse_key_def,
            ParseState.EXPECTING_KEY_NAME: self._parse_key_name,
            ParseState.EXPECTING_VALUE_DEF: self._parse_value_def,
            ParseState.EXPECTING_VALUE: self._parse_value,
        }

    def parse_line(self, line: str) -> bool:
        """Advance the state machine by one line.

        Returns False when the line is not acceptable for the current state;
        the state is left untouched in that case.
        """
        return self._handlers[self.state](line)

    def is_terminator(self, line: str) -> bool:
        # END only counts while waiting for a new key definition
        return self.state is ParseState.EXPECTING_KEY_DEF and line.strip().upper() == END_MARKER

    def _parse_key_def(self, line: str) -> bool:
        if not self._parse_def_line('K', line):
            return False
        self.state = ParseState.EXPECTING_KEY_NAME
        return True

    def _parse_key_name(self, line: str) -> bool:
        val = self._take_content(line)
        if val is None:
            return False
        key = val.strip()
        if not key or ' ' in key:
            return False
        self.key_name = key
        self.next_length = UNSET_LENGTH
        self.state = ParseState.EXPECTING_VALUE_DEF
        return True

    def _parse_value_def(self, line: str) -> bool:
        if not self._parse_def_line('V', line):
            return False
        self.state = ParseState.EXPECTING_VALUE
        return True

    def _parse_value(self, line: str) -> bool:
        val = self._take_content(line)
        if val is None:
            return False
        if self.key_name in self.props:
            # duplicate key within one file: refuse rather than overwrite
            return False
        self.props[self.key_name] = val
        self.next_length = UNSET_LENGTH
        self.key_name = ''
        self.state = ParseState.EXPECTING_KEY_DEF
        return True

    def _parse_def_line(self, prefix: str, line: str) -> bool:
        """Validate and read a "K <n>" / "V <n>" line into next_length."""
        line = line.strip()
        if not line.upper().startswith(prefix + ' '):
            return False
        parts = line.split(' ')
        if len(parts) != 2:
            return False
        if not LENGTH_RE.fullmatch(parts[1]):
            return False
        self.next_length = int(parts[1])
        return True

    def _take_content(self, line: str) -> Optional[str]:
        """First next_length characters of a key-name/value line, or None if too short.

        next_length is left as is; handlers reset it once the line is accepted.
        """
        if self.next_length == UNSET_LENGTH or len(line) < self.next_length:
            return None
        return line[:self.next_length]


def _physical(raw: str) -> str:
    if raw.endswith('\r\n'):
        return raw[:-2]
    if raw.endswith('\n') or raw.endswith('\r'):
        return raw[:-1]
    return raw


def parse_all(lines: Iterable[str], label: str) -> Dict[str, str]:
    """Feed lines through a fresh AuthFileParser until END.

    Args:
        lines: physical lines (a trailing newline on each is tolerated)
        label: path or name used in error messages

    Returns:
        mapping of key -> value collected before END

    Raises:
        MalformedRecord: a line was rejected by the active state
        UnexpectedEndOfInput: no END before input ran out or MAX_LINES
    """
    parser = AuthFileParser()
    tracing = trace_enabled()
    line_num = 0
    for raw in lines:
        line_num += 1
        if line_num > MAX_LINES:
            break
        line = _physical(raw)
        if line.strip().startswith(COMMENT_PREFIX):
            continue
        if parser.is_terminator(line):
            if tracing:
                print(f"[parser] {label}:{line_num} END pairs={len(parser.props)}")
            return parser.props
        if tracing:
            print(f"[parser] {label}:{line_num} state={parser.state.value}")
        if not parser.parse_line(line):
            raise MalformedRecord(label, line_num)
    raise UnexpectedEndOfInput(label)


def read_auth_file(path: Union[str, Path]) -> Dict[str, str]:
    """Open one credential file and parse it.

    OSError / UnicodeDecodeError are not wrapped; the file handle is closed
    on every exit path.
    """
    p = Path(path)
    with p.open('r', encoding='utf-8-sig', newline='') as f:
        return parse_all(f, str(p))
