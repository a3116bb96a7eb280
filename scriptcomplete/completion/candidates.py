"""Completion candidate model shared by every completion source."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Candidate:
    replacement_text: str
    display_text: str = ""
    import_statement: str = ""
    prefix_match: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        if not self.display_text:
            object.__setattr__(self, "display_text", self.replacement_text)

    def to_dict(self) -> dict:
        return {
            "display_text": self.display_text,
            "replacement_text": self.replacement_text,
            "import_statement": self.import_statement,
            "prefix_match": self.prefix_match,
            "description": self.description,
        }
