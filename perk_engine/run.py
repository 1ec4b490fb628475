"""CLI entry point for the perk engine.

Loads config (--config, else configs/perk_engine.yaml under the project
root) and a catalog, builds a context from the command line and
prints the resulting build. Dataset acquisition is the caller's job: pass
an already-fetched dataset JSON with --catalog, or omit it to use the
built-in fallback catalog.

Usage:
    python -m perk_engine.run --mode recommend --role survivor --tag chase
    python -m perk_engine.run --mode random --role killer --seed 7
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from typing import Any

import pandas as pd

from perk_engine import __version__
from perk_engine.catalog import (
    BuildContext,
    Catalog,
    Perk,
    Role,
    fallback_catalog,
    focus_keys,
    load_dataset_file,
    tags_for_role,
)
from perk_engine.config import EngineConfig, load_raw_config
from perk_engine.core.randomizer import random_build
from perk_engine.core.selector import select_build_scored

logger = logging.getLogger(__name__)


def load_catalog(path: str | None, config: dict[str, Any] | None = None) -> Catalog:
    """Load a dataset file, or the fallback catalog when ``path`` is None."""
    if not path:
        logger.info("No catalog specified, using fallback catalog")
        return fallback_catalog()
    return load_dataset_file(path, config)


def build_to_frame(picks: Sequence[tuple[Perk, float | None]]) -> pd.DataFrame:
    """Tabulate a build, one row per slot."""
    rows = []
    for slot, (perk, score) in enumerate(picks, 1):
        rows.append({
            "slot": slot,
            "id": perk.id,
            "name": perk.name,
            "tags": ", ".join(sorted(perk.tags)),
            "tier": perk.tier or "",
            "score": None if score is None else round(score, 2),
            "locked": score is None,
        })
    columns = ["slot", "id", "name", "tags", "tier", "score", "locked"]
    return pd.DataFrame(rows, columns=columns)


def mode_recommend(
    catalog: Catalog,
    context: BuildContext,
    engine: EngineConfig,
) -> pd.DataFrame:
    """Greedy recommendation for ``context``."""
    picks = select_build_scored(
        list(catalog.perks),
        context,
        total_slots=engine.build_size,
        weights=engine.weights,
        mutex=engine.mutex,
    )
    return build_to_frame(picks)


def mode_random(
    catalog: Catalog,
    context: BuildContext,
    engine: EngineConfig,
    *,
    seed: int | None = None,
) -> pd.DataFrame:
    """Random build honoring the context's role and bans."""
    perks = random_build(
        list(catalog.perks),
        context.role,
        context.banned_names,
        rng=seed,
        total_slots=engine.build_size,
        mutex=engine.mutex,
    )
    df = build_to_frame([(p, None) for p in perks])
    df["locked"] = False
    return df


def mode_options(catalog: Catalog, role: Role) -> dict[str, list[str]]:
    """Tags available for ``role`` and focus keys present in the catalog."""
    return {
        "tags": tags_for_role(catalog.perks, role),
        "focus": focus_keys(catalog.perks),
    }


def _split_names(values: list[str] | None) -> list[str]:
    """Accept repeated flags and comma-separated lists alike."""
    names: list[str] = []
    for value in values or []:
        names.extend(part.strip() for part in value.split(",") if part.strip())
    return names


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Perk Engine build optimizer")
    parser.add_argument("--config", help="Path to config YAML")
    parser.add_argument("--catalog", help="Path to dataset JSON ({version, perks})")
    parser.add_argument(
        "--mode",
        required=True,
        choices=["recommend", "random", "options"],
        help="Run mode",
    )
    parser.add_argument(
        "--role",
        required=True,
        choices=[r.value for r in Role],
        help="Role to build for",
    )
    parser.add_argument("--tag", action="append", help="Desired tag (repeatable)")
    parser.add_argument("--lock", action="append", help="Perk name/id to lock (repeatable)")
    parser.add_argument("--ban", action="append", help="Perk name/id to ban (repeatable)")
    parser.add_argument("--focus", help="Focus key for the focus bonus")
    parser.add_argument("--seed", type=int, help="Seed for --mode random")
    parser.add_argument("--verbose", action="store_true", help="Log per-pick details")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config = load_raw_config(args.config)
    engine = EngineConfig.from_dict(config)
    catalog = load_catalog(args.catalog, config)
    logger.info("Mode: %s, Role: %s, Catalog: %s (engine %s)",
                args.mode, args.role, catalog.version, __version__)
    if not catalog.for_role(args.role):
        logger.warning("Catalog %s has no %s perks", catalog.version, args.role)

    context = BuildContext.create(
        args.role,
        tags=_split_names(args.tag),
        locked=_split_names(args.lock),
        banned=_split_names(args.ban),
        focus_key=args.focus,
    )

    if args.mode == "options":
        options = mode_options(catalog, context.role)
        print("Tags: " + (", ".join(options["tags"]) or "-"))
        print("Focus: " + (", ".join(options["focus"]) or "-"))
        return 0

    if args.mode == "recommend":
        df = mode_recommend(catalog, context, engine)
    else:
        df = mode_random(catalog, context, engine, seed=args.seed)

    print(df.to_string(index=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
