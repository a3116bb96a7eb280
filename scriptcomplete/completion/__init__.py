from .assembler import CompletionAssembler
from .candidates import Candidate
from .class_completions import ClassCompletionSource
from .context import CompletionContext, ContextKind, LineContextClassifier
from .module_cache import LoadPath, ModuleCache, ModuleIndex
from .provider import CompletionProvider, CompletionResult
from .ranking import rank_candidates

__all__ = [
    "Candidate",
    "ClassCompletionSource",
    "CompletionAssembler",
    "CompletionContext",
    "CompletionProvider",
    "CompletionResult",
    "ContextKind",
    "LineContextClassifier",
    "LoadPath",
    "ModuleCache",
    "ModuleIndex",
    "rank_candidates",
]
