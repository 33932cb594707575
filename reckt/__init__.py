"""
reckt: find raises that can reach a root of the call graph.

For every abrupt-termination instruction (a Go ``panic``) in a program the
analyzer produces one of:
1. EXPOSED: a witness chain of call edges from the raise back to the program
   root, a test entry, or a spawned task
2. CONTAINED: every backward path ends in a function whose deferred calls
   all invoke the suppression built-in (``recover``)

The program itself is consumed as a dump of its SSA form and points-to call
targets; loading and type checking the source happen elsewhere.
"""

__version__ = "0.1.0"
