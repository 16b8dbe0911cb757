"""
Extension system for ChatFlow.

Provides the registry of named lock predicates that flow files can
reference from ``locks.custom``.
"""

from chatflow.extensions.registry import CustomLockPredicate, LockPredicateRegistry

__all__ = [
    "CustomLockPredicate",
    "LockPredicateRegistry",
]
