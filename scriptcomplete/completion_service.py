"""Wiring of the completion pipeline with its default backends."""

from __future__ import annotations

import logging
from typing import Any

from scriptcomplete.backends.jedi_backend import JediIndexer, JediModuleResolver
from scriptcomplete.backends.module_resolvers import ChainModuleResolver, LoadPathModuleResolver
from scriptcomplete.completion import (
    Candidate,
    ClassCompletionSource,
    CompletionAssembler,
    CompletionProvider,
    CompletionResult,
    LineContextClassifier,
    LoadPath,
    ModuleCache,
)
from scriptcomplete.settings_models import CompletionSettings, normalize_completion_settings
from scriptcomplete.ui.editor_bridge import EditorBridge

logger = logging.getLogger(__name__)


class CompletionService:
    """Owns the module cache, the load path and a ready-to-use provider."""

    def __init__(self, settings: CompletionSettings | dict[str, Any] | None = None) -> None:
        self.settings = normalize_completion_settings(dict(settings or {}))
        self.load_path = LoadPath(self.settings["load_path"])
        self.module_cache = ModuleCache(
            self.settings["library_archive"],
            self.load_path,
            class_discovery=self.settings["class_discovery"],
        )
        resolver = ChainModuleResolver(
            LoadPathModuleResolver(self.load_path),
            JediModuleResolver(self.load_path),
        )
        assembler = CompletionAssembler(
            self.module_cache,
            JediIndexer(self.load_path),
            resolver,
            case_sensitive_members=self.settings["case_sensitive_members"],
        )
        class_source = ClassCompletionSource(self.module_cache.classes) if self.module_cache.classes else None
        self.provider = CompletionProvider(
            LineContextClassifier(self.load_path),
            assembler,
            class_source,
            max_items=self.settings["max_items"],
        )
        logger.debug("Completion service started with library %s", self.module_cache.library_location)

    def complete(self, bridge: EditorBridge) -> CompletionResult:
        if not self.settings["enabled"]:
            return CompletionResult([], 0, "")
        return self.provider.complete(bridge)

    def completions_for(self, bridge: EditorBridge) -> list[Candidate]:
        return self.complete(bridge).candidates

    def shutdown(self) -> None:
        self.module_cache.shutdown(wait=False)
