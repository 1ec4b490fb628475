"""Data contracts for the perk catalog.

Defines the canonical catalog DataFrame schema that ingested datasets must
conform to. Validated at ingestion to fail fast with clear error messages;
the selectors downstream assume contract-clean perks.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from perk_engine import CONTRACT_VERSION
from perk_engine.catalog import TIERS, Role
from perk_engine.core.names import normalize

logger = logging.getLogger(__name__)

# Catalog contracts accepted: any 1.x
_SUPPORTED_MAJOR = 1


@dataclass(frozen=True)
class ColumnSpec:
    """One catalog column: its name, value type and whether it may be null or absent."""

    name: str
    dtype: str  # "str" or "float"
    nullable: bool = False
    required: bool = True


@dataclass(frozen=True)
class CatalogContract:
    """Columns of the catalog table."""

    columns: list[ColumnSpec] = field(default_factory=lambda: [
        ColumnSpec("id", "str"),
        ColumnSpec("name", "str"),
        ColumnSpec("role", "str"),
        ColumnSpec("tier", "str", nullable=True, required=False),
        ColumnSpec("rate", "float", nullable=True, required=False),
    ])


class ContractValidationError(Exception):
    """Raised when input data violates a contract."""


def check_contract_version(config_version: str) -> None:
    """Reject configs written for another major catalog contract.

    Raises:
        ContractValidationError: on a non-string, a malformed version or a
            major version other than the engine's.
    """
    if not isinstance(config_version, str):
        raise ContractValidationError(
            f"contract_version must be a string like '1.0', got {config_version!r}"
        )
    match = re.fullmatch(r"(\d+)\.(\d+)", config_version)
    if match is None:
        raise ContractValidationError(
            f"Invalid contract_version {config_version!r} (expected 'major.minor')"
        )
    if int(match.group(1)) != _SUPPORTED_MAJOR:
        raise ContractValidationError(
            f"Unsupported contract version {config_version}; "
            f"this engine reads catalog contract {CONTRACT_VERSION}"
        )


def _non_strings(col: pd.Series) -> pd.Series:
    values = col.dropna()
    return values[~values.map(lambda v: isinstance(v, str))]


def _check_columns(df: pd.DataFrame, columns: list[ColumnSpec], table_name: str) -> list[str]:
    """Presence, nullability and type of each contract column."""
    errors: list[str] = []
    for spec in columns:
        where = f"{table_name}.{spec.name}"
        if spec.name not in df.columns:
            if spec.required:
                errors.append(f"{table_name}: missing required column '{spec.name}'")
            continue

        col = df[spec.name]
        n_nulls = int(col.isna().sum())
        if n_nulls and not spec.nullable:
            errors.append(f"{where}: {n_nulls} null values")
        if n_nulls == len(col):
            continue

        if spec.dtype == "float" and not pd.api.types.is_numeric_dtype(col):
            errors.append(f"{where}: expected numeric type, got {col.dtype}")
        elif spec.dtype == "str":
            bad = _non_strings(col)
            if len(bad) > 0:
                errors.append(f"{where}: {len(bad)} non-string values (e.g. {bad.iloc[0]!r})")
    return errors


def _check_roles(df: pd.DataFrame, table_name: str) -> list[str]:
    """Check that every role is a known Role value."""
    errors: list[str] = []
    if "role" in df.columns:
        valid = {r.value for r in Role}
        roles = df["role"].dropna()
        unknown = roles[~roles.map(lambda r: isinstance(r, str) and r.strip().lower() in valid)]
        if len(unknown) > 0:
            errors.append(
                f"{table_name}.role: {len(unknown)} unknown roles "
                f"(e.g. {unknown.iloc[0]!r}; expected one of {sorted(valid)})"
            )
    return errors


def _check_empty_names(df: pd.DataFrame, table_name: str) -> list[str]:
    errors: list[str] = []
    if "name" in df.columns:
        names = df["name"].dropna()
        blank = names.map(lambda n: isinstance(n, str) and not n.strip()).sum()
        if blank > 0:
            errors.append(f"{table_name}.name: {blank} blank names")
    return errors


def _warn_unknown_tiers(df: pd.DataFrame, table_name: str) -> None:
    """Unknown tiers are allowed (they score 0) but worth surfacing."""
    if "tier" not in df.columns:
        return
    tiers = df["tier"].dropna()
    unknown = tiers[~tiers.map(lambda t: isinstance(t, str) and t.upper() in TIERS)]
    if len(unknown) > 0:
        logger.warning(
            "%s.tier: %d values outside %s will score no tier bonus (e.g. %r)",
            table_name, len(unknown), "/".join(TIERS), unknown.iloc[0],
        )


def _count_duplicate_names(df: pd.DataFrame) -> int:
    if "name" not in df.columns:
        return 0
    keys = df["name"].dropna().map(lambda n: normalize(n) if isinstance(n, str) else n)
    return int(keys.duplicated().sum())


def validate_catalog(
    df: pd.DataFrame,
    config: dict[str, Any],
) -> None:
    """Validate a catalog DataFrame against the catalog contract.

    Duplicate names are not an error: catalogs merged from several sources
    legitimately repeat perks, and ingestion dedups them by normalized name.

    Args:
        df: Catalog frame with at least 'id', 'name', 'role' columns.
        config: Engine configuration dict ('contract_version' is checked).

    Raises:
        ContractValidationError: if any validation fails, with all errors listed.
    """
    check_contract_version(str(config.get("contract_version", CONTRACT_VERSION)))

    errors: list[str] = []
    errors.extend(_check_columns(df, CatalogContract().columns, "catalog"))
    errors.extend(_check_roles(df, "catalog"))
    errors.extend(_check_empty_names(df, "catalog"))

    if errors:
        raise ContractValidationError(
            f"Contract validation failed ({len(errors)} errors):\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    _warn_unknown_tiers(df, "catalog")

    counts = df["role"].map(lambda r: r.strip().lower()).value_counts()
    logger.info(
        "Contract validation passed: %d perks (%s), %d duplicate names",
        len(df),
        ", ".join(f"{role}={counts.get(role, 0)}" for role in sorted(counts.index)) or "empty",
        _count_duplicate_names(df),
    )
