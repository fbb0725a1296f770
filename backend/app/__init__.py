"""clansync application package - session/profile synchronization engine.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
