"""ORM model registry: importing this module registers every table on Base.metadata.

Alembic ``env.py`` imports ``Base`` from here (not from ``base.py``) so that
autogenerate sees all tables.
"""

from agrimarket.models.farmer import Farmer
from agrimarket.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from agrimarket.models.field import FarmField, SuggestionBatch
from agrimarket.models.harvest import Harvest

__all__ = [
    "Base",
    "Farmer",
    "FarmField",
    "Harvest",
    "SuggestionBatch",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
]
