"""Route Modules - one file per resource.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - Routes delegate to SessionRuntime (facade, state holder, clan catalog)
"""
