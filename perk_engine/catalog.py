"""Catalog and constraint types, plus ingestion of already-fetched datasets.

A dataset document has the shape ``{"version": str, "perks": [record, ...]}``.
Records carry optional metadata either nested under ``meta`` (``tier``,
``rate``, ``owner``, ``topForKillers``) or flat at the top level. Ingestion
flattens records into a DataFrame, validates it against the catalog
contract, then builds immutable :class:`Perk` values.
"""

from __future__ import annotations

import enum
import json
import logging
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from perk_engine import is_valid_scalar
from perk_engine.core.names import normalize

logger = logging.getLogger(__name__)

TIERS = ("S", "A", "B", "C", "D", "E", "F")

# Rank assumed for focus entries that omit one; scores no focus bonus.
_MISSING_FOCUS_RANK = 99


class Role(str, enum.Enum):
    """Catalog partition. Selection never mixes roles."""

    SURVIVOR = "survivor"
    KILLER = "killer"

    @classmethod
    def parse(cls, value: str | Role) -> Role:
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(r.value for r in cls)
            raise ValueError(f"Unknown role {value!r} (expected one of: {valid})") from None


@dataclass(frozen=True)
class FocusRank:
    """Popularity rank of a perk for one focus key (e.g. a killer slug)."""

    key: str
    rank: int


@dataclass(frozen=True)
class Perk:
    """Immutable catalog entry. Identity is the normalized name, not ``id``."""

    id: str
    name: str
    role: Role
    tags: frozenset[str] = frozenset()
    synergy: tuple[str, ...] = ()
    anti_synergy: tuple[str, ...] = ()
    tier: str | None = None
    rate: float | None = None
    focus_ranking: tuple[FocusRank, ...] = ()
    owner: str | None = None
    description: str = ""

    @property
    def key(self) -> str:
        """Normalized name used for dedup and build membership."""
        return normalize(self.name)

    def focus_rank(self, focus_key: str) -> int | None:
        for entry in self.focus_ranking:
            if entry.key == focus_key:
                return entry.rank
        return None


@dataclass(frozen=True)
class BuildContext:
    """User constraints for one selection call."""

    role: Role
    desired_tags: frozenset[str] = frozenset()
    locked_names: tuple[str, ...] = ()
    banned_names: frozenset[str] = frozenset()
    focus_key: str | None = None

    @classmethod
    def create(
        cls,
        role: str | Role,
        *,
        tags: Iterable[str] = (),
        locked: Iterable[str] = (),
        banned: Iterable[str] = (),
        focus_key: str | None = None,
    ) -> BuildContext:
        """Build a context from loose UI-style inputs."""
        return cls(
            role=Role.parse(role),
            desired_tags=frozenset(tags),
            locked_names=tuple(locked),
            banned_names=frozenset(banned),
            focus_key=focus_key or None,
        )


@dataclass(frozen=True)
class Catalog:
    """A versioned, deduplicated set of perks."""

    version: str
    perks: tuple[Perk, ...] = field(default_factory=tuple)

    def for_role(self, role: str | Role) -> list[Perk]:
        role = Role.parse(role)
        return [p for p in self.perks if p.role == role]


# ── Field parsing ────────────────────────────────────────────────────────────


def make_id(name: str) -> str:
    """Stable identifier derived from a display name."""
    cleaned = re.sub(r"\s+", " ", name).strip().lower()
    return re.sub(r"[^a-z0-9]+", "_", cleaned).strip("_")


def parse_rate(raw: Any) -> float | None:
    """Parse a usage rate; accepts numbers and strings with ',' decimals."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        match = re.search(r"[0-9]+(?:[.,][0-9]+)?", raw)
        if not match:
            return None
        value = float(match.group(0).replace(",", "."))
    else:
        return None
    return value if math.isfinite(value) else None


def parse_tier(raw: Any) -> str | None:
    if not isinstance(raw, str):
        return None
    tier = re.sub(r"[^A-Za-z]", "", raw).upper()
    return tier or None


def _as_list(val: Any) -> list[str]:
    if isinstance(val, str):
        return [val]
    if isinstance(val, (list, tuple, set, frozenset)):
        return [str(v) for v in val if is_valid_scalar(v)]
    return []


def _parse_focus(raw: Any) -> list[dict[str, Any]]:
    """Normalize focus entries to ``[{"key": str, "rank": int}]``."""
    if not isinstance(raw, (list, tuple)):
        return []
    entries: list[dict[str, Any]] = []
    for item in raw:
        if isinstance(item, FocusRank):
            entries.append({"key": item.key, "rank": item.rank})
            continue
        if not isinstance(item, Mapping):
            continue
        key = item.get("slug", item.get("key"))
        if not key:
            continue
        try:
            rank = int(item.get("rank", _MISSING_FOCUS_RANK))
        except (TypeError, ValueError):
            rank = _MISSING_FOCUS_RANK
        entries.append({"key": str(key), "rank": rank})
    return entries


# ── Ingestion ────────────────────────────────────────────────────────────────


def records_to_frame(records: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Flatten dataset records into the canonical catalog DataFrame."""
    rows = []
    for record in records:
        meta = record.get("meta") or {}
        name = record.get("name")
        if isinstance(name, str):
            name = re.sub(r"\s+", " ", name).strip() or None
        raw_id = record.get("id")
        if not raw_id and isinstance(name, str):
            raw_id = make_id(name)
        rows.append({
            "id": raw_id,
            "name": name,
            "role": record.get("role"),
            "tags": _as_list(record.get("tags")),
            "synergy": _as_list(record.get("synergy")),
            "anti_synergy": _as_list(record.get("anti_synergy", record.get("antiSynergy"))),
            "tier": parse_tier(meta.get("tier", record.get("tier"))),
            "rate": parse_rate(meta.get("rate", record.get("rate"))),
            "focus_ranking": _parse_focus(
                meta.get("topForKillers", record.get("focus_ranking"))
            ),
            "owner": meta.get("owner", record.get("owner")),
            "description": record.get("desc", record.get("description")) or "",
        })

    columns = [
        "id", "name", "role", "tags", "synergy", "anti_synergy",
        "tier", "rate", "focus_ranking", "owner", "description",
    ]
    df = pd.DataFrame(rows, columns=columns)
    df["rate"] = df["rate"].astype(float)
    return df


def _row_to_perk(row: pd.Series) -> Perk:
    tier = row.get("tier")
    rate = row.get("rate")
    owner = row.get("owner")
    focus = _parse_focus(row.get("focus_ranking"))
    return Perk(
        id=str(row["id"]),
        name=str(row["name"]),
        role=Role.parse(row["role"]),
        tags=frozenset(_as_list(row.get("tags"))),
        synergy=tuple(_as_list(row.get("synergy"))),
        anti_synergy=tuple(_as_list(row.get("anti_synergy"))),
        tier=parse_tier(tier) if is_valid_scalar(tier) else None,
        rate=parse_rate(rate) if is_valid_scalar(rate) else None,
        focus_ranking=tuple(FocusRank(e["key"], e["rank"]) for e in focus),
        owner=str(owner) if is_valid_scalar(owner) and owner else None,
        description=str(row.get("description") or ""),
    )


def catalog_from_frame(
    df: pd.DataFrame,
    config: dict[str, Any] | None = None,
) -> list[Perk]:
    """Validate a catalog DataFrame and convert its rows to perks.

    Raises:
        ContractValidationError: if the frame violates the catalog contract.
    """
    from perk_engine.contracts import validate_catalog

    validate_catalog(df, config or {})
    return [_row_to_perk(row) for _, row in df.iterrows()]


def catalog_from_records(
    records: Iterable[Mapping[str, Any]],
    config: dict[str, Any] | None = None,
) -> list[Perk]:
    return catalog_from_frame(records_to_frame(records), config)


def dedupe_by_name(perks: Iterable[Perk]) -> list[Perk]:
    """Keep the first perk for each normalized name, preserving order."""
    seen: set[str] = set()
    out: list[Perk] = []
    for perk in perks:
        if perk.key in seen:
            continue
        seen.add(perk.key)
        out.append(perk)
    return out


def load_dataset(
    document: Mapping[str, Any],
    config: dict[str, Any] | None = None,
) -> Catalog:
    """Build a :class:`Catalog` from a parsed dataset document."""
    records = document.get("perks")
    if not isinstance(records, list):
        from perk_engine.contracts import ContractValidationError

        raise ContractValidationError("Dataset document must contain a 'perks' list")

    perks = catalog_from_records(records, config)
    unique = dedupe_by_name(perks)
    if len(unique) < len(perks):
        logger.info("Dropped %d duplicate perk names", len(perks) - len(unique))

    version = str(document.get("version") or "unknown")
    logger.info("Loaded catalog %s: %d perks", version, len(unique))
    return Catalog(version=version, perks=tuple(unique))


def load_dataset_file(path: str | Path, config: dict[str, Any] | None = None) -> Catalog:
    """Read a dataset JSON document from disk."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")
    with open(path, encoding="utf-8") as f:
        document = json.load(f)
    return load_dataset(document, config)


# ── Listings ─────────────────────────────────────────────────────────────────


def tags_for_role(perks: Iterable[Perk], role: str | Role) -> list[str]:
    """Sorted tags present on perks of ``role``."""
    role = Role.parse(role)
    return sorted({t for p in perks if p.role == role for t in p.tags})


def focus_keys(perks: Iterable[Perk]) -> list[str]:
    """Sorted focus keys referenced by any perk's focus ranking."""
    return sorted({e.key for p in perks for e in p.focus_ranking})


# ── Seed dataset ─────────────────────────────────────────────────────────────

_FALLBACK_RECORDS: list[dict[str, Any]] = [
    {
        "id": "dead_hard",
        "name": "Dead Hard",
        "role": "survivor",
        "tags": ["chase", "exhaustion"],
        "synergy": ["Adrenaline", "Resilience"],
        "anti_synergy": ["No Mither"],
        "desc": "Dash forward to avoid a hit while exhausted.",
    },
    {
        "id": "adrenaline",
        "name": "Adrenaline",
        "role": "survivor",
        "tags": ["endgame", "heal", "speed"],
        "synergy": ["Dead Hard", "Resilience"],
        "desc": "On last gen completion: heal one state and gain haste.",
    },
    {
        "id": "resilience",
        "name": "Resilience",
        "role": "survivor",
        "tags": ["injured", "repair", "general"],
        "synergy": ["Adrenaline", "Dead Hard"],
        "desc": "Action speed bonus while injured.",
    },
    {
        "id": "barbecue_and_chili",
        "name": "Barbecue & Chili",
        "role": "killer",
        "tags": ["tracking", "economy"],
        "synergy": ["Pop Goes the Weasel"],
        "desc": "Auras on hook; bonus bloodpoints.",
    },
    {
        "id": "pop_goes_the_weasel",
        "name": "Pop Goes the Weasel",
        "role": "killer",
        "tags": ["gen_regression", "hook"],
        "synergy": ["Barbecue & Chili", "Pain Resonance"],
        "desc": "After hook: kick a gen for big regression.",
    },
    {
        "id": "pain_resonance",
        "name": "Scourge Hook: Pain Resonance",
        "role": "killer",
        "tags": ["gen_regression", "hook", "scourge_hook"],
        "synergy": ["Pop Goes the Weasel"],
        "desc": "Scourge hook triggers regression/explosion.",
    },
]


def fallback_catalog() -> Catalog:
    """Small built-in catalog used when no dataset is supplied."""
    return load_dataset({"version": "fallback", "perks": _FALLBACK_RECORDS})
