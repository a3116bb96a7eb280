"""Class-name completions backed by the class discovery cache.

These complete class names in ``from`` imports and bare capitalized names;
the latter carry the import statement the editor should add at the top of
the script when the candidate is accepted.
"""

from __future__ import annotations

import logging
import re

from scriptcomplete.completion.candidates import Candidate
from scriptcomplete.services.import_inserter import import_statement_for
from scriptcomplete.services.language_provider import ClassDiscovery

logger = logging.getLogger(__name__)

_FROM_PACKAGE_RE = re.compile(r"^(from[ \t]+)([a-zA-Z_][\w.]*)$")
_FROM_IMPORT_NAMES_RE = re.compile(r"^(from[ \t]+([\w.]+)[ \t]+import[ \t]+)([\w., \t]*)$")
_SIMPLE_CLASS_NAME_RE = re.compile(r"^(.*[ \t(\[{,=]|)([A-Z_][a-zA-Z0-9_]+)$")


class ClassCompletionSource:
    def __init__(self, discovery: ClassDiscovery | None) -> None:
        self._discovery = discovery

    def completions_for(self, current_line: str, seed: str) -> list[Candidate]:
        discovery = self._discovery
        if discovery is None or not discovery.is_ready():
            # Never block the keystroke path on the background index.
            return []

        line = str(current_line or "")
        seed = str(seed or "")
        if not line.endswith(seed):
            return []
        indent = line[: len(line) - len(line.lstrip(" \t"))]
        text = line[len(indent):]
        crop = len(line) - len(seed)

        m = _FROM_PACKAGE_RE.match(text)
        if m:
            statements = [import_statement_for(fq) for fq in discovery.find_containing(m.group(2))]
            return self._aligned(line, crop, seed, [(indent + s, s, "") for s in statements])

        m = _FROM_IMPORT_NAMES_RE.match(text)
        if m:
            package, names = m.group(2), m.group(3)
            # Keep earlier names exactly as typed; only the last one is completed.
            last_start = names.rfind(",") + 1
            last = names[last_start:]
            partial = last.strip()
            head = indent + m.group(1) + names[:last_start] + last[: len(last) - len(last.lstrip())]
            if partial:
                found = discovery.find_by_prefix(f"{package}.{partial}")
                found = [fq for fq in found if fq.rsplit(".", 1)[0] == package]
            else:
                found = discovery.find_for_package(package)
            simple_names = [fq.rsplit(".", 1)[-1] for fq in found]
            return self._aligned(line, crop, seed, [(head + s, s, "") for s in simple_names])

        m = _SIMPLE_CLASS_NAME_RE.match(line)
        if m and not re.match(r"(import|from)[ \t]", text):
            entries = [
                (m.group(1) + fq.rsplit(".", 1)[-1], fq.rsplit(".", 1)[-1], fq)
                for fq in discovery.find_by_simple_name_prefix(m.group(2))
            ]
            return self._aligned(line, crop, seed, entries, with_imports=True)
        return []

    @staticmethod
    def _aligned(
        line: str,
        crop: int,
        seed: str,
        entries: list[tuple[str, str, str]],
        *,
        with_imports: bool = False,
    ) -> list[Candidate]:
        out: list[Candidate] = []
        for full_line, display, qualified in entries:
            # Candidates must not rewrite text before the seed.
            if not full_line.startswith(line[:crop]):
                continue
            replacement = full_line[crop:]
            out.append(
                Candidate(
                    replacement_text=replacement,
                    display_text=display,
                    import_statement=import_statement_for(qualified) if with_imports else "",
                    prefix_match=replacement.startswith(seed),
                    description=qualified,
                )
            )
        return out
