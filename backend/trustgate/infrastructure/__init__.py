"""Infrastructure Layer — database access and cross-cutting concerns.

Invariants:
    - Infrastructure never imports core policy logic, only core types and errors
    - Storage errors mapped to DatabaseError
"""
