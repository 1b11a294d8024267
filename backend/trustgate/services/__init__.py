"""Service Layer — imperative shell around the pure core.

Invariants:
    - Services do IO (DB, logging) and delegate every decision to core/
    - Services never construct HTTP responses

Design Decisions:
    - load -> decide (pure) -> save, with best-effort persistence where decisions
      must not depend on storage
"""
