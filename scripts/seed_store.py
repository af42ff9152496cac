from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path


def _bootstrap_import_path() -> None:
    # Allow running as: python scripts/seed_store.py
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_bootstrap_import_path()

from talentflow.config import Settings  # noqa: E402
from talentflow.db import open_storage  # noqa: E402
from talentflow.services.mutation_service import MutationService  # noqa: E402
from talentflow.services.seed_service import SeedInitializer  # noqa: E402


async def _run(settings: Settings) -> int:
    storage = await open_storage(settings)
    try:
        report = await SeedInitializer.from_settings(MutationService(storage), settings).ensure_seeded()
    finally:
        await storage.close()

    state = "seeded" if report.seeded else "already seeded"
    print(
        f"{state} store={settings.store_name} durable={storage.durable} "
        f"jobs={report.jobs} candidates={report.candidates} assessments={report.assessments}"
    )
    if not storage.durable:
        print("warning: durable store unavailable, data was not persisted", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the TalentFlow store with synthetic data.")
    parser.add_argument("--db-url", default=None, help="SQLAlchemy URL of the store (defaults to DB_URL / sqlite)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the synthetic data")
    parser.add_argument("--jobs", type=int, default=None, help="Number of jobs to generate")
    parser.add_argument("--candidates", type=int, default=None, help="Number of candidates to generate")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    overrides: dict = {}
    if args.db_url:
        overrides["db_url"] = args.db_url
    if args.seed is not None:
        overrides["seed_random"] = args.seed
    if args.jobs is not None:
        overrides["seed_jobs"] = args.jobs
    if args.candidates is not None:
        overrides["seed_candidates"] = args.candidates
    settings = Settings().model_copy(update=overrides)

    return asyncio.run(_run(settings))


if __name__ == "__main__":
    raise SystemExit(main())
