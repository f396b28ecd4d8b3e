"""Shared utilities — program-wide names.

Rules
-----
* No business logic.
* No I/O.
* Importable by any layer.
"""
