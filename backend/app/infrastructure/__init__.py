"""Infrastructure Layer - adapters for the identity service, profile store and logging.

Invariants:
    - Adapters implement core/repository_protocols.py structurally
    - Library exceptions are mapped to AuthError / StoreError at this boundary
"""
