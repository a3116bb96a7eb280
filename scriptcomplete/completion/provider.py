"""Public completion entry point.

``CompletionProvider.completions_for`` never raises: buffer access problems,
failing sources and unresolvable code all end up as fewer (or no) candidates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from scriptcomplete.completion.assembler import CompletionAssembler
from scriptcomplete.completion.candidates import Candidate
from scriptcomplete.completion.class_completions import ClassCompletionSource
from scriptcomplete.completion.context import UNCOMPLETABLE_TRAILING_CHARS, LineContextClassifier
from scriptcomplete.completion.ranking import rank_candidates
from scriptcomplete.ui.editor_bridge import EditorBridge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionResult:
    candidates: list[Candidate]
    replacement_offset: int
    seed: str


EMPTY_RESULT = CompletionResult([], 0, "")


class CompletionProvider:
    def __init__(
        self,
        classifier: LineContextClassifier,
        assembler: CompletionAssembler,
        class_source: ClassCompletionSource | None = None,
        *,
        max_items: int = 500,
    ) -> None:
        self._classifier = classifier
        self._assembler = assembler
        self._class_source = class_source
        self._max_items = max(1, int(max_items))

    def completions_for(self, bridge: EditorBridge) -> list[Candidate]:
        return self.complete(bridge).candidates

    def complete(self, bridge: EditorBridge) -> CompletionResult:
        try:
            before = bridge.text_before_caret()
            line = bridge.current_line()
            seed = bridge.already_typed()
        except Exception:
            logger.exception("Failed to read the editor buffer")
            return EMPTY_RESULT
        prior_text = before[: len(before) - len(line)]
        candidates = self.completions_for_text(prior_text, line, seed)
        return CompletionResult(candidates, len(before) - len(seed), seed)

    def completions_for_text(self, prior_text: str, current_line: str, seed: str) -> list[Candidate]:
        if not current_line or current_line[-1] in UNCOMPLETABLE_TRAILING_CHARS:
            return []
        sources: list[tuple[str, Callable[[], list[Candidate]]]] = [
            ("script", lambda: self._script_completions(prior_text, current_line, seed)),
        ]
        if self._class_source is not None:
            sources.append(("classes", lambda: self._class_source.completions_for(current_line, seed)))

        out: list[Candidate] = []
        seen: set[tuple[str, str]] = set()
        for name, source in sources:
            try:
                produced = source()
            except Exception:
                logger.exception("Completion source %r failed", name)
                continue
            for candidate in produced:
                key = (candidate.replacement_text, candidate.import_statement)
                if key in seen:
                    continue
                seen.add(key)
                out.append(candidate)
        return rank_candidates(out, seed)[: self._max_items]

    def _script_completions(self, prior_text: str, current_line: str, seed: str) -> list[Candidate]:
        context = self._classifier.classify(prior_text, current_line, seed)
        return self._assembler.assemble(context)
