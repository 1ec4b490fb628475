"""Perk Engine — build recommendation and randomization for role-based perk catalogs."""

__version__ = "0.9.0"
CONTRACT_VERSION = "1.0"

# Maximum number of perks a build may hold.
BUILD_SIZE = 4


def is_valid_scalar(val) -> bool:
    """Scalar-safe null check: handles None, NaN, pd.NA without list-like issues.

    Unlike ``pd.notna()``, this never raises ``ValueError`` on list-like inputs
    and explicitly rejects common container types (list, tuple, dict, set).

    Returns ``True`` only when *val* is a non-null scalar value.
    """
    if val is None:
        return False
    if isinstance(val, (list, tuple, dict, set, frozenset)):
        return False
    try:
        import pandas as _pd  # lazy: keeps package import free of pandas
        return bool(_pd.notna(val))
    except (ValueError, TypeError):
        return False
