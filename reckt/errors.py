"""
Setup failures.

Anything raised from here aborts the run before a single raise site is
searched: the program could not be loaded, it has no entry point, or its
call graph could not be built.
"""


class RecktError(Exception):
    """Base class for fatal setup errors."""


class ProgramLoadError(RecktError):
    """The program dump is unreadable or malformed."""


class NoEntryPointError(RecktError):
    """No main package (or, in test mode, no test function) was found."""


class CallGraphError(RecktError):
    """The call graph references functions the program does not define."""
