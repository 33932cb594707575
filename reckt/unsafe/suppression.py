"""
Suppression: a function that calls the ``recover`` built-in.

A deferred call to such a function stops an in-flight panic. The check is
flow-insensitive: one call anywhere in the body counts, even if it
is unreachable, conditionally skipped, or followed by another panic. Code
that relies on that kind of control flow is out of scope.
"""

from __future__ import annotations

from ..cfg.program import Function

SUPPRESSION_BUILTIN = "recover"


def has_suppression(func: Function, builtin: str = SUPPRESSION_BUILTIN) -> bool:
    """True if any block of ``func`` calls the suppression built-in."""
    for block in func.blocks:
        for instr in block.instructions:
            if instr.is_call_to_builtin(builtin):
                return True
    return False


__all__ = ['SUPPRESSION_BUILTIN', 'has_suppression']
