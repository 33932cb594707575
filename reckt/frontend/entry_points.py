"""
Entry Point Detection.

Entry points are the roots of reachability:
1. Programs: the ``init`` and ``main`` functions of the main package
2. Tests: every test, benchmark, example and fuzz function in a _test file

With tests enabled the call graph root aggregates all test functions, the
same way a generated test-main package would call each of them.
"""

from __future__ import annotations
from typing import List

from ..errors import NoEntryPointError
from ..cfg.program import Function, Package, Program


TEST_PREFIXES = ("Test", "Benchmark", "Example", "Fuzz")


def is_test_entry_name(name: str, prefix: str) -> bool:
    """
    Check whether ``name`` looks like a test function for ``prefix``.

    ``TestFoo`` and ``Test`` qualify, ``Testify`` does not: the character
    after the prefix must not be lower case.
    """
    if not name.startswith(prefix):
        return False
    if len(name) == len(prefix):
        return True
    return not name[len(prefix)].islower()


def is_test_entry(func: Function) -> bool:
    """A test-only function named like a test, benchmark, example or fuzz target."""
    if not func.test_only or func.synthetic:
        return False
    return any(is_test_entry_name(func.name, prefix) for prefix in TEST_PREFIXES)


def find_main_package(program: Program) -> Package:
    """Return the first package named ``main``."""
    for pkg in program.packages:
        if pkg.name == "main":
            return pkg
    raise NoEntryPointError("no main package")


def detect_entry_points(program: Program, tests: bool = False) -> List[Function]:
    """
    Select the functions the call graph root calls.

    Raises:
        NoEntryPointError: no main package / no main function / no tests
    """
    if tests:
        entries = [f for f in program.all_functions(include_tests=True) if is_test_entry(f)]
        if not entries:
            raise NoEntryPointError("no tests")
        return entries

    pkg = find_main_package(program)
    funcs = {f.name: f for f in program.package_functions(pkg.path)}
    if "main" not in funcs:
        raise NoEntryPointError("no func main() in main package")

    entries = []
    if "init" in funcs:
        entries.append(funcs["init"])
    entries.append(funcs["main"])
    return entries


__all__ = [
    'TEST_PREFIXES',
    'is_test_entry_name',
    'is_test_entry',
    'find_main_package',
    'detect_entry_points',
]
