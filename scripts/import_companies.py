#!/usr/bin/env python3
"""Bulk import companies from a YAML file into the entity store."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from backend.app.admin.service import AdminService
from backend.app.config import load_config
from backend.app.contracts import CompanyCreate
from backend.app.store import EntityBase, EntityStore


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments for the import utility."""

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", type=Path, help="YAML file holding a list of companies")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Alternate config.yaml (default: repository config.yaml)",
    )
    parser.add_argument(
        "--created-by",
        default="import-script",
        help="Value recorded as created_by on imported records",
    )
    return parser.parse_args(argv)


def read_companies(path: Path) -> List[CompanyCreate]:
    """Read and validate companies from ``path``.

    The file may hold a list of company mappings or a mapping with a
    ``companies`` list.
    """

    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if isinstance(data, dict):
        data = data.get("companies")
    if not isinstance(data, list):
        raise ValueError("Expected a list of companies")
    items: List[Dict[str, Any]] = [item for item in data if isinstance(item, dict)]
    return [CompanyCreate(**item) for item in items]


async def run_import(
    companies: List[CompanyCreate], database_url: str, *, created_by: str
) -> Dict[str, Any]:
    """Create the schema if needed and import ``companies``."""

    engine = create_async_engine(database_url, future=True)
    try:
        async with engine.begin() as connection:
            await connection.run_sync(EntityBase.metadata.create_all)
        store = EntityStore(async_sessionmaker(engine, expire_on_commit=False))
        return await AdminService(store).import_companies(companies, created_by=created_by)
    finally:
        await engine.dispose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point returning ``0`` on success."""

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    args = parse_args(argv)
    try:
        companies = read_companies(args.path)
    except (OSError, yaml.YAMLError, ValueError, ValidationError) as exc:
        print(f"Could not read companies from {args.path}: {exc}", file=sys.stderr)
        return 1
    config = load_config(args.config)
    result = asyncio.run(run_import(companies, config.store.database_url, created_by=args.created_by))
    print(result["message"])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
