"""ORM Models - SQLAlchemy declarative models for the SQL profile backend.

Invariants:
    - All models inherit from Base (db/base.py)
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from app.models.clan import Clan  # noqa: F401
from app.models.profile import Profile  # noqa: F401
from app.models.program import Program  # noqa: F401
