"""Classification of the caret line into a completion context.

The classifier looks at the text before the current line, the current line up
to the caret and the already-typed token (the *seed*) and decides which kind
of completion applies. Matchers run in a fixed order and the first one that
recognizes the line wins, so earlier matchers must stay the more specific ones.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from scriptcomplete.completion.module_cache import LoadPath

logger = logging.getLogger(__name__)

UNCOMPLETABLE_TRAILING_CHARS = "()[]{},; "

_IMPORT_PACKAGE_RE = re.compile(r"^[ \t]*(import|from)[ \t]+([a-zA-Z_][\w.]*)$")
_IMPORT_MEMBER_RE = re.compile(r"^[ \t]*from[ \t]+([a-zA-Z_][\w.]*)[ \t]+import[ \t]*(\w*)$")
_BARE_NAME_RE = re.compile(r"(?<![\w.])([a-zA-Z_]\w*)$")
_MEMBER_SEED_RE = re.compile(r"\.(\w*)$")
_BLOCK_HEADER_RE = re.compile(r"^([ \t]*)(\S[^#]*?)[ \t]*:[ \t]*(#.*)?$")
_SYS_PATH_RE = re.compile(
    r"sys\.path\.(?:append|insert[ \t]*\([ \t]*-?\d+[ \t]*,)[ \t]*\(?[ \t]*[rbu]?(['\"])(.*?)\1[ \t]*\)"
)
_EXPRESSION_CHARS = re.compile(r"[\w.]")
_NUMBER_RE = re.compile(r"\d[\w.]*")
_CLOSERS = {")": "(", "]": "[", "}": "{"}
_OPENERS = {"(", "[", "{"}


class ContextKind(Enum):
    PACKAGE_IMPORT = "package_import"
    MEMBER_IMPORT = "member_import"
    BARE_NAME = "bare_name"
    DOTTED_ACCESS = "dotted_access"
    NONE = "none"


@dataclass(frozen=True, kw_only=True)
class CompletionContext:
    kind: ContextKind = ContextKind.NONE
    prior_text: str = ""
    current_line: str = ""
    seed: str = ""
    # Set when the text before the line ended with an open block header and a
    # placeholder statement was appended; holds the indentation of that block.
    block_indent: str = ""
    raw_prior_text: str = ""

    @property
    def replace_start(self) -> int:
        """Column in ``current_line`` where the replacement of the seed begins."""
        return len(self.current_line) - len(self.seed)

    @property
    def repaired(self) -> bool:
        return bool(self.block_indent)


@dataclass(frozen=True, kw_only=True)
class PackageImportContext(CompletionContext):
    kind: ContextKind = ContextKind.PACKAGE_IMPORT
    keyword: str = ""
    path: str = ""
    path_start: int = 0


@dataclass(frozen=True, kw_only=True)
class MemberImportContext(CompletionContext):
    kind: ContextKind = ContextKind.MEMBER_IMPORT
    module: str = ""
    member: str = ""


@dataclass(frozen=True, kw_only=True)
class BareNameContext(CompletionContext):
    kind: ContextKind = ContextKind.BARE_NAME
    name: str = ""


@dataclass(frozen=True, kw_only=True)
class DottedAccessContext(CompletionContext):
    kind: ContextKind = ContextKind.DOTTED_ACCESS
    expression: str = ""
    member: str = ""


NO_CONTEXT = CompletionContext()


@dataclass(frozen=True)
class _LineState:
    prior_text: str
    raw_prior_text: str
    current_line: str
    seed: str
    block_indent: str

    def common(self) -> dict:
        return {
            "prior_text": self.prior_text,
            "raw_prior_text": self.raw_prior_text,
            "current_line": self.current_line,
            "seed": self.seed,
            "block_indent": self.block_indent,
        }


def _match_package_import(state: _LineState) -> CompletionContext | None:
    m = _IMPORT_PACKAGE_RE.match(state.current_line)
    if not m:
        return None
    return PackageImportContext(keyword=m.group(1), path=m.group(2), path_start=m.start(2), **state.common())


def _match_member_import(state: _LineState) -> CompletionContext | None:
    m = _IMPORT_MEMBER_RE.match(state.current_line)
    if not m:
        return None
    return MemberImportContext(module=m.group(1), member=m.group(2) or "", **state.common())


def _match_bare_name(state: _LineState) -> CompletionContext | None:
    m = _BARE_NAME_RE.search(state.current_line)
    if not m:
        return None
    return BareNameContext(name=m.group(1), **state.common())


def _match_dotted_access(state: _LineState) -> CompletionContext | None:
    line = state.current_line
    m = _MEMBER_SEED_RE.search(line)
    if not m:
        return None
    expression = expression_before(line, m.start())
    if not expression:
        return None
    return DottedAccessContext(expression=expression, member=m.group(1), **state.common())


MATCHERS: tuple[Callable[[_LineState], CompletionContext | None], ...] = (
    _match_package_import,
    _match_member_import,
    _match_bare_name,
    _match_dotted_access,
)


def expression_before(line: str, end: int) -> str:
    """Return the expression ending right before ``line[end]``.

    Walks left over names, dots and balanced bracket groups, stopping at the
    first character that cannot belong to a primary expression.
    """
    i = end
    stack: list[str] = []
    quote = ""
    while i > 0:
        ch = line[i - 1]
        if stack:
            if quote:
                if ch == quote:
                    quote = ""
            elif ch in ("'", '"'):
                quote = ch
            elif ch in _CLOSERS:
                stack.append(_CLOSERS[ch])
            elif ch in _OPENERS:
                if stack.pop() != ch:
                    return ""
            i -= 1
            continue
        if ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
            i -= 1
            continue
        if _EXPRESSION_CHARS.match(ch):
            i -= 1
            continue
        break
    if stack:
        return ""
    expression = line[i:end]
    # "1." is a float literal and ".x" has no receiver.
    if not expression or expression[0] == "." or _NUMBER_RE.fullmatch(expression):
        return ""
    return expression


def find_block_header(prior_text: str) -> tuple[int, str] | None:
    """Locate a trailing block header ("if x:") in ``prior_text``.

    Returns the index where the header line starts and its indentation, or
    None when the last non-empty line does not open a block.
    """
    text = str(prior_text or "")
    if not text.endswith("\n"):
        return None
    lines = text.splitlines(keepends=True)
    offset = len(text)
    for raw in reversed(lines):
        offset -= len(raw)
        body = raw.rstrip("\r\n")
        if not body.strip():
            continue
        m = _BLOCK_HEADER_RE.match(body)
        if not m or m.group(2).lstrip().startswith("#"):
            return None
        return offset, m.group(1)
    return None


def block_indent_for(header_indent: str, current_line: str) -> str:
    line_indent = current_line[: len(current_line) - len(current_line.lstrip(" \t"))]
    if len(line_indent.expandtabs()) > len(header_indent.expandtabs()):
        return line_indent
    return header_indent + "    "


def sys_path_additions(source_text: str) -> list[str]:
    return [m.group(2) for m in _SYS_PATH_RE.finditer(str(source_text or ""))]


class LineContextClassifier:
    """Turn ``(prior_text, current_line, seed)`` into a completion context."""

    PLACEHOLDER = "pass"

    def __init__(self, load_path: LoadPath | None = None) -> None:
        self._load_path = load_path

    def classify(self, prior_text: str, current_line: str, seed: str) -> CompletionContext:
        line = str(current_line or "")
        seed = str(seed or "")
        if not line or line[-1] in UNCOMPLETABLE_TRAILING_CHARS:
            return NO_CONTEXT
        if not line.endswith(seed):
            logger.debug("Seed %r is not a suffix of the caret line %r", seed, line)
            return NO_CONTEXT

        raw_prior = str(prior_text or "")
        prepared, block_indent = self.repair(raw_prior, line)
        self._register_load_paths(raw_prior)

        state = _LineState(
            prior_text=prepared,
            raw_prior_text=raw_prior,
            current_line=line,
            seed=seed,
            block_indent=block_indent,
        )
        for matcher in MATCHERS:
            context = matcher(state)
            if context is not None:
                logger.debug("Classified %r as %s", line, context.kind.value)
                return context
        return NO_CONTEXT

    def repair(self, prior_text: str, current_line: str = "") -> tuple[str, str]:
        """Append a placeholder statement after a trailing block header.

        Returns the parseable text and the block indentation ("" when the
        text needed no repair).
        """
        header = find_block_header(prior_text)
        if header is None:
            return prior_text, ""
        _start, header_indent = header
        indent = block_indent_for(header_indent, current_line)
        logger.debug("Appending placeholder statement after block header")
        return f"{prior_text}{indent}{self.PLACEHOLDER}\n", indent

    def _register_load_paths(self, prior_text: str) -> None:
        if self._load_path is None:
            return
        for raw_path in sys_path_additions(prior_text):
            try:
                if self._load_path.add(raw_path):
                    logger.info("Added %s to the module load path", raw_path)
            except OSError:
                logger.warning("Failed to add path from sys.path expression: %s", raw_path, exc_info=True)
