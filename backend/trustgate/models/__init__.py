"""ORM Models — SQLAlchemy declarative models for persisted trust-engine state.

Invariants:
    - All models inherit from Base (db/base.py)
    - Rows are storage only; decisions are made on core objects rebuilt from them

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all / autogenerate
"""

from trustgate.models.persona_session import PersonaSessionRecord  # noqa: F401
from trustgate.models.escrow_transaction import EscrowTransactionRecord  # noqa: F401
from trustgate.models.resource_location import ResourceLocationRecord  # noqa: F401
