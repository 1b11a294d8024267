"""Identity — read-only verification facts supplied by the profile store.

Invariants:
    - is_verified_student is DERIVED, never stored
    - Whitespace-only institution / matric number count as empty
    - The core never writes identity fields (frozen dataclass)
"""

from dataclasses import dataclass

from trustgate.core.domain_types import IdentityId


@dataclass(frozen=True)
class Identity:
    """Actor record as seen by the policy layer."""

    identity_id: IdentityId
    institution: str = ""
    matric_number: str = ""

    @property
    def is_verified_student(self) -> bool:
        return bool(self.institution.strip()) and bool(self.matric_number.strip())
