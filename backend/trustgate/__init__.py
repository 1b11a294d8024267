"""Trust Engine Package — persona, escrow and geo-privacy visibility policy.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
