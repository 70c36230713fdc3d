from __future__ import annotations

import argparse
import asyncio
import csv
import os
import sys
from decimal import Decimal, InvalidOperation
from itertools import islice
from typing import Iterable

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app.core.errors import PlanningError  # noqa: E402
from app.db.session import SessionLocal  # noqa: E402
from app.schemas.planned_item import PlannedItemCreate  # noqa: E402
from app.services import planned_item_service  # noqa: E402


def _normalize_number(raw: str | None) -> Decimal:
    if raw is None:
        return Decimal("0")

    value = raw.strip().replace("\u00a0", "").replace(" ", "")
    if not value:
        return Decimal("0")

    value = value.replace("€", "").replace("$", "")
    if "," in value and "." in value:
        value = value.replace(",", "")
    elif "," in value:
        value = value.replace(",", ".")

    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"Montant illisible '{raw}'") from exc


def _optional_int(raw: str | None) -> int | None:
    value = (raw or "").strip()
    return int(value) if value else None


def _iter_rows(reader: Iterable[dict[str, str]], skip_rows: int) -> Iterable[tuple[int, dict[str, str]]]:
    for index, row in enumerate(reader):
        if index < skip_rows:
            continue
        yield index, row


def _payload_from_row(row: dict[str, str], args: argparse.Namespace) -> PlannedItemCreate:
    return PlannedItemCreate(
        designation=row.get(args.designation_column),
        unit_cost=_normalize_number(row.get(args.unit_cost_column)),
        planned_quantity=_normalize_number(row.get(args.quantity_column)),
        allocated_amount=_normalize_number(row.get(args.allocated_column)),
        item_id=_optional_int(row.get(args.item_column)),
        item_status_id=_optional_int(row.get(args.status_column)) or args.item_status_id,
        financial_operation_id=args.financial_operation_id,
    )


async def import_planned_items_csv(args: argparse.Namespace) -> tuple[int, list[str]]:
    created = 0
    errors: list[str] = []
    async with SessionLocal() as session:
        with open(args.file, newline="", encoding="utf-8") as handle:
            if args.skip_header_rows:
                reader = csv.DictReader(islice(handle, args.skip_header_rows, None), delimiter=args.delimiter)
            else:
                reader = csv.DictReader(handle, delimiter=args.delimiter)
            for index, row in _iter_rows(reader, args.skip_rows):
                try:
                    payload = _payload_from_row(row, args)
                    await planned_item_service.create_planned_item(session, payload)
                except (PlanningError, ValueError) as exc:
                    if args.stop_on_error:
                        raise
                    errors.append(f"ligne {index + 1}: {exc}")
                    continue
                created += 1
    return created, errors


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Importer des lignes de planification depuis un CSV.")
    parser.add_argument("file", help="Chemin du fichier CSV")
    parser.add_argument("--financial-operation-id", type=int, required=True)
    parser.add_argument("--item-status-id", type=int, default=None, help="Statut par defaut si la colonne est vide")
    parser.add_argument("--designation-column", default="DESIGNATION")
    parser.add_argument("--unit-cost-column", default="COUT UNITAIRE")
    parser.add_argument("--quantity-column", default="QUANTITE")
    parser.add_argument("--allocated-column", default="MONTANT ALLOUE")
    parser.add_argument("--item-column", default="ARTICLE")
    parser.add_argument("--status-column", default="STATUT")
    parser.add_argument("--delimiter", default=",")
    parser.add_argument("--skip-header-rows", type=int, default=0)
    parser.add_argument("--skip-rows", type=int, default=0)
    parser.add_argument("--stop-on-error", action="store_true", help="Arrete l'import a la premiere ligne rejetee.")
    return parser


async def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    created, errors = await import_planned_items_csv(args)
    for message in errors:
        print(message, file=sys.stderr)
    print(f"Import termine : {created} ligne(s) creee(s), {len(errors)} rejetee(s).")


if __name__ == "__main__":
    asyncio.run(main())
