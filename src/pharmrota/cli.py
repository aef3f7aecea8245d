from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from typing import Any, Dict, List

from pydantic import ValidationError

from pharmrota.bank_holidays import default_weekdays, english_bank_holidays
from pharmrota.engine.service import RotaService
from pharmrota.errors import RotaError
from pharmrota.io.csv_loader import load_reference
from pharmrota.io.results_export import export_week, week_to_dataframe
from pharmrota.io.store import RotaStore
from pharmrota.models.constraints import load_engine_config
from pharmrota.models.reference import ReferenceData
from pharmrota.models.shift import monday_of
from pharmrota.models.validated import GenerateRequest, ReassignRequestModel
from pharmrota.utils.logging_setup import setup_logging
from pharmrota.utils.structured_logging import configure_structlog


def _date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from None


def _csv(value: str | None) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _service(args: argparse.Namespace) -> RotaService:
    reference = load_reference(args.reference) if args.reference else ReferenceData()
    return RotaService(RotaStore(args.db), reference, load_engine_config(args.config))


def _emit(args: argparse.Namespace, payload: Dict[str, Any]) -> None:
    if args.json_out:
        print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))
    else:
        for k, v in payload.items():
            print(f" - {k}: {v}")


def cmd_generate(args: argparse.Namespace, service: RotaService) -> int:
    staff_ids = _csv(args.staff) or [s.id for s in service.reference.default_roster()]
    weekdays = _csv(args.weekdays) or default_weekdays(args.week)
    request = GenerateRequest(
        week_start=args.week,
        staff_ids=staff_ids,
        selected_weekdays=weekdays,
        selected_clinic_ids=_csv(args.clinics) or None,
    )
    result = service.generate_week(request, generated_by=args.user)
    if args.export:
        export_week(result.documents, args.export)
    _emit(args, {
        "week_start": result.week_start.isoformat(),
        "rotas": {d.isoformat(): rid for d, rid in result.rota_ids_by_date.items()},
        "assignments": len(result.assignments),
        "gaps": sum(1 for a in result.assignments if a.is_gap),
    })
    return 0


def cmd_show(args: argparse.Namespace, service: RotaService) -> int:
    if args.rota_id:
        documents = [service.get_document(args.rota_id)]
    else:
        documents = list(service.current_documents(monday_of(args.week)).values())
    df = week_to_dataframe(documents, service.reference.staff_by_id())
    if args.json_out:
        print(df.to_json(orient="records", indent=2))
    else:
        print(df.to_string(index=False) if not df.empty else "(no assignments)")
        for doc in documents:
            for c in doc.conflicts:
                print(f"[{c.severity.value}] {doc.date.isoformat()} {c.description}")
    return 0


def cmd_reassign(args: argparse.Namespace, service: RotaService) -> int:
    request = ReassignRequestModel(
        date=args.date,
        original_staff_id=args.from_staff,
        new_staff_id=args.to_staff,
        scope=args.scope,
        location=args.location,
        start_time=args.start,
        end_time=args.end,
        respect_continuity=not args.no_continuity,
    )
    result = service.reassign(request, edited_by=args.user)
    _emit(args, {
        "success": result.success,
        "outcomes": [o.to_dict() for o in result.outcomes],
    })
    return 0 if result.success else 1


def cmd_publish(args: argparse.Namespace, service: RotaService) -> int:
    result = service.publish_week(monday_of(args.week), publisher=args.user)
    _emit(args, {
        "published_set_id": result.published_set_id,
        "rotas": len(result.rota_ids),
        "archived_previous": len(result.archived_ids),
    })
    return 0


def cmd_archive(args: argparse.Namespace, service: RotaService) -> int:
    if args.rota_id:
        ids = [service.archive_document(args.rota_id).id]
    else:
        ids = service.archive_week(monday_of(args.week))
    _emit(args, {"archived": ids})
    return 0


def cmd_sweep(args: argparse.Namespace, service: RotaService) -> int:
    result = service.sweep_stale_drafts(today=args.today, months=args.months)
    _emit(args, {"cutoff": result.cutoff.isoformat(), "deleted": len(result.deleted_ids)})
    return 0


def cmd_holidays(args: argparse.Namespace, service: RotaService) -> int:
    holidays = english_bank_holidays(args.year)
    _emit(args, {h.date.isoformat(): h.title for h in holidays})
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pharmrota", description="Pharmacy weekly rota engine")
    p.add_argument("--db", default="data/rotas.db", help="SQLite database path")
    p.add_argument("--reference", help="Directory with staff.csv, requirements.csv, clinics.csv")
    p.add_argument("--config", help="Engine configuration JSON")
    p.add_argument("--user", default="cli", help="Identity recorded in provenance fields")
    p.add_argument("--log-level", default="WARNING")
    p.add_argument("--log-file", default=None)
    p.add_argument("--json", dest="json_out", action="store_true", help="JSON output")
    sub = p.add_subparsers(dest="command", required=True)

    g = sub.add_parser("generate", help="Generate a week's draft rota")
    g.add_argument("--week", type=_date, required=True, help="Monday of the week")
    g.add_argument("--staff", help="Comma-separated staff IDs (default: default roster)")
    g.add_argument("--weekdays", help="Comma-separated weekdays (default: Mon-Fri minus bank holidays)")
    g.add_argument("--clinics", help="Comma-separated clinic IDs (default: clinics included by default)")
    g.add_argument("--export", help="Also export the week to this JSON file")
    g.set_defaults(func=cmd_generate)

    s = sub.add_parser("show", help="Show a rota or a week")
    s.add_argument("--rota-id")
    s.add_argument("--week", type=_date)
    s.set_defaults(func=cmd_show)

    r = sub.add_parser("reassign", help="Replace a staff member on a slot, day or week")
    r.add_argument("--date", type=_date, required=True)
    r.add_argument("--from", dest="from_staff")
    r.add_argument("--to", dest="to_staff")
    r.add_argument("--scope", choices=["slot", "day", "week"], default="slot")
    r.add_argument("--location")
    r.add_argument("--start")
    r.add_argument("--end")
    r.add_argument("--no-continuity", action="store_true", help="Allow splitting continuity blocks")
    r.set_defaults(func=cmd_reassign)

    pub = sub.add_parser("publish", help="Publish a week's drafts")
    pub.add_argument("--week", type=_date, required=True)
    pub.set_defaults(func=cmd_publish)

    a = sub.add_parser("archive", help="Archive a published rota or week")
    a.add_argument("--rota-id")
    a.add_argument("--week", type=_date)
    a.set_defaults(func=cmd_archive)

    sw = sub.add_parser("sweep", help="Delete stale drafts")
    sw.add_argument("--today", type=_date)
    sw.add_argument("--months", type=int)
    sw.set_defaults(func=cmd_sweep)

    h = sub.add_parser("holidays", help="List English bank holidays")
    h.add_argument("--year", type=int, default=date.today().year)
    h.set_defaults(func=cmd_holidays)
    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    if args.command in ("show", "archive") and not (args.rota_id or args.week):
        p.error(f"{args.command} needs --rota-id or --week")

    setup_logging(level=args.log_level, log_file=args.log_file)
    configure_structlog(json_output=args.json_out, file=sys.stderr)

    try:
        return args.func(args, _service(args))
    except ValidationError as exc:
        print(f"Invalid request: {exc}")
        return 2
    except RotaError as exc:
        print(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
