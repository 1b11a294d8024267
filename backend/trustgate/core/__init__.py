"""Core Layer — pure policy logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, models/ or db/
    - Time and randomness are injected; functions are deterministic given their inputs

Design Decisions:
    - Functional core separated from imperative shell
"""
