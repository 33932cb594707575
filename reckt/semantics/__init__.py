"""Semantics: interprocedural propagation of raises."""
