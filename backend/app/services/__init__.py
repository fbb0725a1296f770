"""Services Layer - session reconciliation engine and the facade the routes call.

Invariants:
    - Services depend on core/ Protocols only, never on concrete adapters
    - SessionState is replaced only by the reconciler and the facade

Design Decisions:
    - One Task per identity notification; stale attempts discarded by generation
"""
