from .module_resolvers import ChainModuleResolver, LoadPathModuleResolver

__all__ = [
    "ChainModuleResolver",
    "LoadPathModuleResolver",
]
