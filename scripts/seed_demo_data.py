#!/usr/bin/env python3
"""Fill a dispatch database with random technicians and unassigned jobs.

Jobs get durations from 30 minutes to two days and crew sizes from 1 to 4,
with addresses spread over a handful of nearby zip codes so proximity
scoring has something to work with.

Usage:
    python scripts/seed_demo_data.py
    python scripts/seed_demo_data.py --db data/dispatch.db --jobs 40 --techs 6
    python scripts/seed_demo_data.py --seed 7 --dry-run
"""

import argparse
import random
import sys
from datetime import date, timedelta
from pathlib import Path

# Ensure project root is on the path when run as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

from dispatch.core.db import init_db, upsert_job, upsert_technician
from dispatch.core.schemas import (
    WEEKDAYS,
    CrewRequirements,
    Customer,
    Job,
    Technician,
    TimeOffEntry,
    WorkingDay,
)


# (title, category, min minutes, max minutes, min crew, max crew)
JOB_TEMPLATES: list[tuple[str, str, int, int, int, int]] = [
    ("Thermostat Installation", "HVAC", 30, 90, 1, 1),
    ("Faucet Repair", "Plumbing", 30, 60, 1, 1),
    ("Outlet Installation", "Electrical", 30, 60, 1, 1),
    ("AC Tune-Up", "HVAC", 60, 120, 1, 1),
    ("Ceiling Fan Installation", "Electrical", 45, 90, 1, 2),
    ("Water Heater Inspection", "Plumbing", 120, 180, 1, 2),
    ("Toilet Replacement", "Plumbing", 90, 150, 1, 1),
    ("Electrical Panel Inspection", "Electrical", 120, 180, 1, 1),
    ("Dishwasher Repair", "Appliance", 60, 120, 1, 1),
    ("Mini Split Installation", "HVAC", 360, 480, 2, 3),
    ("Electrical Rewiring (Room)", "Electrical", 360, 480, 2, 3),
    ("HVAC System Replacement", "HVAC", 480, 960, 2, 4),
    ("Gutter Cleaning", "General", 120, 240, 1, 2),
]

TECH_PROFILES: list[tuple[list[str], list[str]]] = [
    (["HVAC", "Heating"], ["EPA 608"]),
    (["Plumbing", "Drains"], ["Journeyman Plumber"]),
    (["Electrical", "Panel"], ["Licensed Electrician"]),
    (["Appliance Repair"], []),
    ([], []),
]

FIRST_NAMES = ["Ana", "Ben", "Carla", "Dev", "Eli", "Fatima", "Gus", "Hana", "Ivan", "Jo"]
LAST_NAMES = ["Reyes", "Okafor", "Lind", "Park", "Novak", "Silva", "Khan", "Moreau"]
STREETS = ["Oak St", "Maple Ave", "Cedar Ln", "Pine Rd", "Elm Dr", "Lakeview Blvd"]
ZIPS = ["78701", "78702", "78704", "78745", "78613", "76501"]
ZONES = ["north", "south", "central"]
COLORS = ["#e6194b", "#3cb44b", "#4363d8", "#f58231", "#911eb4", "#46f0f0"]


def _technician(rng: random.Random, index: int, today: date) -> Technician:
    skills, certs = rng.choice(TECH_PROFILES)
    off_days = set(rng.sample(WEEKDAYS[5:], k=rng.randint(1, 2)))
    hours = {
        day: WorkingDay(enabled=day not in off_days, start=rng.choice(["07:00", "08:00"]), end="17:00")
        for day in WEEKDAYS
    }
    time_off = []
    if rng.random() < 0.2:
        start = today + timedelta(days=rng.randint(1, 10))
        time_off.append(TimeOffEntry(start_date=start, end_date=start + timedelta(days=rng.randint(0, 3)), type="vacation"))
    return Technician(
        id=f"tech-{index + 1}",
        name=f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}",
        color=COLORS[index % len(COLORS)],
        working_hours=hours,
        skills=skills,
        certifications=certs,
        max_jobs_per_day=rng.choice([3, 4, 5]),
        max_hours_per_day=rng.choice([8, 9, 10]),
        home_zip=rng.choice(ZIPS),
        max_travel_miles=rng.choice([20, 30]),
        preferred_zones=rng.sample(ZONES, k=1),
        time_off=time_off,
    )


def _job(rng: random.Random, index: int, today: date) -> Job:
    title, category, lo, hi, crew_lo, crew_hi = rng.choice(JOB_TEMPLATES)
    minutes = rng.randrange(lo, hi + 1, 15)
    duration = f"{minutes / 60:g} hours" if minutes % 30 == 0 else minutes
    scheduled = today + timedelta(days=rng.randint(0, 5)) if rng.random() < 0.5 else None
    return Job(
        id=f"job-{index + 1:03d}",
        title=title,
        category=category,
        estimated_duration=duration,
        customer=Customer(
            name=f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}",
            address=f"{rng.randint(100, 9999)} {rng.choice(STREETS)}, Austin, TX {rng.choice(ZIPS)}",
        ),
        scheduled_date=scheduled,
        scheduled_time=rng.choice([None, "08:00", "10:30", "13:00"]) if scheduled else None,
        crew_requirements=CrewRequirements(required=rng.randint(crew_lo, crew_hi)),
        zone=rng.choice(ZONES),
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a dispatch database with demo data")
    parser.add_argument("--db", default="data/dispatch.db", help="SQLite DB path")
    parser.add_argument("--techs", type=int, default=5, help="Number of technicians")
    parser.add_argument("--jobs", type=int, default=20, help="Number of jobs")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for repeatable data")
    parser.add_argument("--dry-run", action="store_true", help="Print instead of writing")
    args = parser.parse_args()

    rng = random.Random(args.seed)
    today = date.today()
    techs = [_technician(rng, i, today) for i in range(args.techs)]
    jobs = [_job(rng, i, today) for i in range(args.jobs)]

    if args.dry_run:
        for t in techs:
            print(f"  {t.id}: {t.name} skills={t.skills} zip={t.home_zip}")
        for j in jobs:
            crew = j.crew_requirements.required if j.crew_requirements else 1
            print(f"  {j.id}: {j.title} ({j.estimated_duration}, crew {crew}) {j.scheduled_date or 'unscheduled'}")
        print(f"[DRY RUN] Would write {len(techs)} technicians and {len(jobs)} jobs")
        return

    conn = init_db(args.db)
    for t in techs:
        upsert_technician(conn, t)
    for j in jobs:
        upsert_job(conn, j)
    conn.close()
    print(f"Wrote {len(techs)} technicians and {len(jobs)} jobs to {args.db}")


if __name__ == "__main__":
    main()
