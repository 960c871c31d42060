"""CLI entry point for the dispatch scheduler."""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date, timedelta
from pathlib import Path

import yaml

from dispatch.core.config import Settings
from dispatch.core.db import init_db
from dispatch.core.schemas import AutoAssignPlan, Job, Technician
from dispatch.scheduling.conflicts import check_conflicts
from dispatch.scheduling.mutator import AssignmentMutator
from dispatch.scheduling.planner import plan_across_days, spread_jobs_across_days
from dispatch.scheduling.roster import partition_jobs
from dispatch.scheduling.scorer import suggest_assignments
from dispatch.scheduling.skills import CategoryTableResolver
from dispatch.scheduling.slots import find_next_available_slot, suggest_time_slot
from dispatch.store.sqlite import SQLiteJobStore


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML file (default: built-in defaults)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def _date_arg(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        msg = f"invalid date '{value}', expected YYYY-MM-DD"
        raise argparse.ArgumentTypeError(msg) from e


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Dispatch scheduler - rank, check and auto-assign technicians to jobs",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- import subcommand ---
    import_parser = subparsers.add_parser("import", help="Load technicians and jobs from YAML")
    import_parser.add_argument("--file", required=True, help="YAML file with 'technicians' and 'jobs' lists")
    _add_common(import_parser)

    # --- suggest subcommand ---
    suggest_parser = subparsers.add_parser("suggest", help="Rank every technician for one job")
    suggest_parser.add_argument("--job", required=True, help="Job id")
    suggest_parser.add_argument("--date", type=_date_arg, help="Day to plan (default: job date or today)")
    _add_common(suggest_parser)

    # --- check subcommand ---
    check_parser = subparsers.add_parser("check", help="List conflicts for a technician/job pair")
    check_parser.add_argument("--job", required=True, help="Job id")
    check_parser.add_argument("--tech", required=True, help="Technician id")
    check_parser.add_argument("--date", type=_date_arg, help="Day to check (default: job date or today)")
    _add_common(check_parser)

    # --- slot subcommand ---
    slot_parser = subparsers.add_parser("slot", help="Suggest a start time for a job")
    slot_parser.add_argument("--job", required=True, help="Job id")
    slot_parser.add_argument("--tech", required=True, help="Technician id")
    slot_parser.add_argument("--date", type=_date_arg, help="Day to search (default: job date or today)")
    _add_common(slot_parser)

    # --- plan subcommand ---
    plan_parser = subparsers.add_parser("plan", help="Auto-assign unassigned jobs")
    plan_parser.add_argument("--date", type=_date_arg, default=None, help="First day to plan (default: today)")
    plan_parser.add_argument(
        "--apply",
        action="store_true",
        help="Write successful assignments to the store",
    )
    plan_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show how jobs would be spread over days without scoring",
    )
    plan_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export the plan to format (json)",
    )
    _add_common(plan_parser)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str | None) -> Settings:
    if path is None:
        return Settings()
    return Settings.from_yaml(path)


def export_plan_json(plan: AutoAssignPlan) -> str:
    """Export a plan as a JSON string."""
    data = {
        "assignments": [
            {
                "job_id": a.job_id,
                "title": a.job.title,
                "date": a.scheduled_date.isoformat() if a.scheduled_date else None,
                "tech_ids": a.tech_ids,
                "tech_names": a.tech_names,
                "score": a.score,
                "failed": a.failed,
                "is_fully_staffed": a.is_fully_staffed,
                "reasons": a.reasons,
                "warnings": a.warnings,
            }
            for a in plan.assignments
        ],
        "summary": plan.summary.model_dump(),
    }
    return json.dumps(data, indent=2)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def cmd_import(store: SQLiteJobStore, path: str) -> None:
    """Handle import subcommand."""
    file = Path(path)
    if not file.exists():
        msg = f"Import file not found: {file}"
        raise FileNotFoundError(msg)
    raw = yaml.safe_load(file.read_text()) or {}

    techs = [Technician.model_validate(t) for t in raw.get("technicians", [])]
    jobs = [Job.model_validate(j) for j in raw.get("jobs", [])]
    for tech in techs:
        await store.put_technician(tech)
    for job in jobs:
        await store.put_job(job)
    print(f"Imported {len(techs)} technicians and {len(jobs)} jobs.")


async def _load_day(store: SQLiteJobStore, job_id: str, on: date | None) -> tuple[Job, date, list[Technician], list[Job]]:
    job = await store.get_job(job_id)
    day = on or job.scheduled_date or date.today()
    techs = await store.list_technicians()
    day_jobs = [j for j in await store.list_jobs(scheduled_date=day, active_only=True) if j.id != job.id]
    return job, day, techs, partition_jobs(day_jobs, techs).assigned


def _find_tech(techs: list[Technician], tech_id: str) -> Technician:
    for tech in techs:
        if tech.id == tech_id:
            return tech
    msg = f"Technician not found: {tech_id}"
    raise LookupError(msg)


async def cmd_suggest(store: SQLiteJobStore, settings: Settings, job_id: str, on: date | None) -> None:
    """Handle suggest subcommand."""
    job, day, techs, day_jobs = await _load_day(store, job_id, on)
    result = suggest_assignments(job, techs, day_jobs, day, settings)

    print(f"Suggestions for {job.id} '{job.title}' on {day}:")
    for s in result.suggestions:
        mark = "*" if s.is_recommended else " "
        print(f" {mark} {s.score:>5}  {s.tech_name or s.tech_id}")
        if s.reasons:
            print(f"          + {'; '.join(s.reasons)}")
        if s.warnings:
            print(f"          ! {'; '.join(s.warnings)}")
    if not result.has_good_match:
        print("No recommended match.")


async def cmd_check(store: SQLiteJobStore, settings: Settings, job_id: str, tech_id: str, on: date | None) -> None:
    """Handle check subcommand."""
    job, day, techs, day_jobs = await _load_day(store, job_id, on)
    tech = _find_tech(techs, tech_id)
    report = check_conflicts(tech, job, day_jobs, day, settings.defaults, CategoryTableResolver(settings.skills))

    if not report.has_conflicts:
        print(f"No conflicts for {tech.name or tech.id} on {day}.")
        return
    for c in report.conflicts:
        print(f"  [{c.severity.upper()}] {c.type}: {c.message}")


async def cmd_slot(store: SQLiteJobStore, settings: Settings, job_id: str, tech_id: str, on: date | None) -> None:
    """Handle slot subcommand."""
    job, day, techs, day_jobs = await _load_day(store, job_id, on)
    tech = _find_tech(techs, tech_id)

    start = suggest_time_slot(tech, job, day_jobs, day, settings.defaults)
    if start is not None:
        print(f"{tech.name or tech.id} can start {job.id} at {start} on {day}.")
        return

    all_jobs = await store.list_jobs(active_only=True)
    nxt = find_next_available_slot(
        tech, job.estimated_duration, all_jobs, day + timedelta(days=1), defaults=settings.defaults,
    )
    if nxt is None:
        print(f"No slot for {tech.name or tech.id} within a week of {day}.")
    else:
        print(f"No slot on {day}; next opening {nxt.day_name} {nxt.date} {nxt.start_time}-{nxt.end_time}.")


async def cmd_plan(
    store: SQLiteJobStore,
    settings: Settings,
    start: date,
    apply: bool,
    dry_run: bool,
    export_format: str | None,
) -> None:
    """Handle plan subcommand."""
    techs = await store.list_technicians()
    view = partition_jobs(await store.list_jobs(active_only=True), techs)
    last_day = start + timedelta(days=settings.planner.lookahead_days - 1)
    pending = [
        j for j in view.unassigned
        if j.scheduled_date is None or start <= j.scheduled_date <= last_day
    ]

    if dry_run:
        print(f"[DRY RUN] {len(pending)} unassigned jobs, {len(techs)} technicians")
        for day, jobs in spread_jobs_across_days(pending, techs, view.assigned, start, settings).items():
            print(f"[DRY RUN] {day}: {', '.join(j.id for j in jobs)}")
        print("[DRY RUN] Would write 0 assignments")
        return

    plan = plan_across_days(pending, techs, view.assigned, start, settings)
    s = plan.summary
    print(f"\nPlan complete: {s.assigned}/{s.total} assigned, {s.unassigned} unassigned, "
          f"{s.understaffed} understaffed.")
    for a in plan.assignments:
        who = ", ".join(a.tech_names or a.tech_ids) if not a.failed else "-"
        print(f"  {a.scheduled_date} {a.job_id}: {who} ({a.score})"
              + (f"  ! {'; '.join(a.warnings)}" if a.warnings else ""))

    if export_format == "json":
        print(f"\n{export_plan_json(plan)}")

    if apply:
        results = await AssignmentMutator(store).bulk_assign(plan.successful)
        ok = sum(1 for r in results if r.success)
        print(f"\nApplied {ok}/{len(results)} assignments.")
        for r in results:
            if not r.success:
                print(f"  {r.job_id}: {r.error}")


async def run(args: argparse.Namespace, settings: Settings) -> None:
    conn = init_db(settings.database.path)
    store = SQLiteJobStore(conn)
    try:
        if args.command == "import":
            await cmd_import(store, args.file)
        elif args.command == "suggest":
            await cmd_suggest(store, settings, args.job, args.date)
        elif args.command == "check":
            await cmd_check(store, settings, args.job, args.tech, args.date)
        elif args.command == "slot":
            await cmd_slot(store, settings, args.job, args.tech, args.date)
        elif args.command == "plan":
            await cmd_plan(store, settings, args.date or date.today(), args.apply, args.dry_run, args.export)
    finally:
        conn.close()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(run(args, settings))
    except (FileNotFoundError, LookupError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
