"""Core Layer - pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - State transitions are synchronous; suspension only happens in services/

Design Decisions:
    - Functional core separated from imperative shell (IO behind Protocols)
"""
