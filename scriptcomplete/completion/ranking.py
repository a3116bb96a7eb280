"""Prefix-first, lexicographic ranking of completion candidates."""

from __future__ import annotations

from typing import Iterable

from scriptcomplete.completion.candidates import Candidate


def rank_key(candidate: Candidate, seed: str) -> tuple[int, str]:
    text = candidate.replacement_text
    return (0 if text.startswith(seed) else 1, text)


def rank_candidates(candidates: Iterable[Candidate], seed: str) -> list[Candidate]:
    # sorted() is stable: equal keys keep the order the sources produced them in.
    pfx = str(seed or "")
    return sorted(candidates, key=lambda c: rank_key(c, pfx))
