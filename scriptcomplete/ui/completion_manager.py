from __future__ import annotations

import logging

from PySide6.QtCore import QObject, QTimer, Signal
from PySide6.QtGui import QTextCursor

from scriptcomplete.completion import Candidate, CompletionResult
from scriptcomplete.completion_service import CompletionService
from scriptcomplete.services.import_inserter import insert_import_statement
from scriptcomplete.ui.editor_bridge import QtEditorBridge

logger = logging.getLogger(__name__)


def _inserted_span(old: str, new: str) -> tuple[int, str] | None:
    """Position and text of a pure insertion turning ``old`` into ``new``."""
    delta = len(new) - len(old)
    if delta <= 0:
        return None
    i = 0
    limit = len(old)
    while i < limit and old[i] == new[i]:
        i += 1
    if new[i + delta:] != old[i:]:
        return None
    return i, new[i:i + delta]


class CompletionManager(QObject):
    """Qt adapter that runs completion queries for a plain-text editor widget."""

    completionReady = Signal(object)
    modulesReady = Signal()
    statusMessage = Signal(str)

    def __init__(self, service: CompletionService, parent=None):
        super().__init__(parent)
        self._service = service
        self._modules_announced = False

        self._ready_poll = QTimer(self)
        self._ready_poll.setInterval(50)
        self._ready_poll.timeout.connect(self._check_modules_ready)
        self._ready_poll.start()

    @property
    def service(self) -> CompletionService:
        return self._service

    # ---------- Public API ----------

    def request_completion(self, editor) -> CompletionResult:
        result = self._service.complete(QtEditorBridge(editor))
        self.completionReady.emit(
            {
                "items": [c.to_dict() for c in result.candidates],
                "offset": result.replacement_offset,
                "seed": result.seed,
            }
        )
        return result

    def apply_candidate(self, editor, candidate: Candidate, replacement_offset: int) -> None:
        cursor = editor.textCursor()
        caret = cursor.position()
        cursor.beginEditBlock()
        try:
            cursor.setPosition(max(0, min(int(replacement_offset), caret)))
            cursor.setPosition(caret, QTextCursor.MoveMode.KeepAnchor)
            cursor.insertText(candidate.replacement_text)
            if candidate.import_statement:
                self._insert_import(editor, candidate.import_statement)
        finally:
            cursor.endEditBlock()
        editor.setTextCursor(cursor)

    def shutdown(self) -> None:
        self._ready_poll.stop()
        self._service.shutdown()

    # ---------- Internals ----------

    def _insert_import(self, editor, statement: str) -> None:
        old = editor.toPlainText()
        result = insert_import_statement(old, statement)
        if result.status != "updated":
            return
        span = _inserted_span(old, result.source_text)
        if span is None:
            logger.debug("Import insertion was not a pure insertion; skipped %r", statement)
            return
        position, text = span
        # The caret cursor follows document edits, so it stays after the completion.
        import_cursor = QTextCursor(editor.document())
        import_cursor.setPosition(position)
        import_cursor.insertText(text)
        self.statusMessage.emit(f"Added '{statement}'")

    def _check_modules_ready(self) -> None:
        if self._modules_announced or not self._service.module_cache.is_ready():
            return
        self._modules_announced = True
        self._ready_poll.stop()
        self.modulesReady.emit()
