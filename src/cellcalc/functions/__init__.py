"""Operator/function registry and built-in rules."""

from cellcalc.functions.registry import RegistryBuilder, SymbolEntry, SymbolRegistry
from cellcalc.functions.scalar import DEFAULT_REGISTRY

__all__ = [
    "DEFAULT_REGISTRY",
    "RegistryBuilder",
    "SymbolEntry",
    "SymbolRegistry",
]
