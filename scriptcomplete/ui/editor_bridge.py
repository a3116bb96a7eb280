"""Read-only views of an editor buffer around the caret."""

from __future__ import annotations

import re
from typing import Protocol

_TYPED_TOKEN_RE = re.compile(r"\w*$")


class EditorBridge(Protocol):
    def text_before_caret(self) -> str:
        ...

    def current_line(self) -> str:
        ...

    def already_typed(self) -> str:
        ...


def already_typed_token(line_text: str) -> str:
    """The identifier characters immediately left of the caret."""
    m = _TYPED_TOKEN_RE.search(line_text)
    return m.group(0) if m else ""


class TextEditorBridge:
    """Bridge over a plain string buffer and a caret offset."""

    def __init__(self, text: str, caret: int | None = None) -> None:
        self.text = str(text or "")
        self.caret = len(self.text) if caret is None else int(caret)

    def _checked_caret(self) -> int:
        if not 0 <= self.caret <= len(self.text):
            raise IndexError(f"Caret {self.caret} outside buffer of length {len(self.text)}")
        return self.caret

    def text_before_caret(self) -> str:
        return self.text[: self._checked_caret()]

    def current_line(self) -> str:
        before = self.text_before_caret()
        return before[before.rfind("\n") + 1:]

    def already_typed(self) -> str:
        return already_typed_token(self.current_line())


class QtEditorBridge:
    """Bridge over a ``QPlainTextEdit``/``QTextEdit`` style widget."""

    def __init__(self, editor) -> None:
        self._editor = editor

    def _text_and_caret(self) -> tuple[str, int]:
        text = self._editor.toPlainText()
        caret = int(self._editor.textCursor().position())
        if not 0 <= caret <= len(text):
            raise IndexError(f"Caret {caret} outside buffer of length {len(text)}")
        return text, caret

    def text_before_caret(self) -> str:
        text, caret = self._text_and_caret()
        return text[:caret]

    def current_line(self) -> str:
        before = self.text_before_caret()
        return before[before.rfind("\n") + 1:]

    def already_typed(self) -> str:
        return already_typed_token(self.current_line())
