"""CLI for Garageflow: create tables, seed demo data, serve the API, query matches."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import time


async def cmd_init_db(args):
    """Create every table on the configured database."""
    from garageflow.db.engine import create_all, engine

    await create_all()
    await engine.dispose()
    print(f"Tables created on {engine.url.render_as_string(hide_password=True)}")


DEMO_CHECKLIST = [
    ("Exterior", "Body damage noted", "Bool", True),
    ("Exterior", "Tyre tread depth (mm)", "Number", True),
    ("Battery", "State of charge (%)", "Number", True),
    ("Battery", "Charging port condition", "Text", False),
    ("Interior", "Warning lights on dashboard", "Bool", True),
    ("Interior", "Customer belongings", "Text", False),
]

DEMO_TECHNICIANS = [
    ("Ana Ruiz", ["battery", "diagnostics"]),
    ("Tomas Berg", ["tyres", "brakes"]),
    ("Lina Okafor", ["battery", "bodywork"]),
]


async def cmd_seed(args):
    """Seed technicians with weekday schedules and a checklist catalog."""
    from garageflow.db import crud
    from garageflow.db.engine import async_session_factory, create_all, engine

    await create_all()
    async with async_session_factory() as db:
        existing = await crud.list_technicians(db)
        if existing:
            print(f"{len(existing)} technician(s) already present, skipping seed.")
            await engine.dispose()
            return

        for name, specialties in DEMO_TECHNICIANS:
            tech = await crud.create_technician(db, name=name, specialties=specialties)
            for weekday in range(5):
                await crud.add_work_schedule(
                    db, tech, center_id=args.center, day_of_week=weekday,
                    start_time=time(8, 0), end_time=time(17, 0),
                )
            print(f"Created technician: {tech.name} (id: {tech.id})")

        for order, (category, label, item_type, required) in enumerate(DEMO_CHECKLIST, start=1):
            await crud.create_checklist_item(
                db, category=category, label=label, type=item_type, order=order, is_required=required,
            )
        print(f"Created {len(DEMO_CHECKLIST)} checklist items")

    await engine.dispose()
    print(f"\nSeed complete for center {args.center}. Start the server with: garageflow serve")


async def cmd_match(args):
    """Ask a running service which technicians can take a work item."""
    from garageflow.client.desk import ServiceDesk
    from garageflow.core.availability import MatchFilters

    async with ServiceDesk.connect(args.base_url) as desk:
        booking = await desk.get_booking(args.booking_id)
        filters = MatchFilters(shift=args.shift, workload_band=args.workload_band, specialty=args.specialty)
        matches = await desk.match_technicians(booking, filters)

    if not matches:
        print("No technician is available for this window.")
        return
    for m in matches:
        print(f"{m.technician_id}  {m.technician.name:<20} {m.shift:<9} workload={m.workload} ({m.workload_band})")


def cmd_serve(args):
    import uvicorn

    uvicorn.run("garageflow.main:app", host=args.host, port=args.port, reload=args.reload)


def main():
    from garageflow.config import get_settings

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parser = argparse.ArgumentParser(description="Garageflow CLI")
    subparsers = parser.add_subparsers(dest="command")

    # init-db
    subparsers.add_parser("init-db", help="Create database tables")

    # seed
    sd = subparsers.add_parser("seed", help="Seed demo technicians and checklist items")
    sd.add_argument("--center", default="center-1", help="Service center id for demo schedules")

    # serve
    sv = subparsers.add_parser("serve", help="Run the API server")
    sv.add_argument("--host", default="127.0.0.1")
    sv.add_argument("--port", type=int, default=8000)
    sv.add_argument("--reload", action="store_true")

    # match
    mt = subparsers.add_parser("match", help="List technicians available for a work item")
    mt.add_argument("booking_id", help="Work item id")
    mt.add_argument("--base-url", default=None, help="Service URL (defaults to config)")
    mt.add_argument("--shift", choices=["morning", "afternoon", "evening"])
    mt.add_argument("--workload-band", choices=["light", "moderate", "heavy"])
    mt.add_argument("--specialty")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "init-db":
        asyncio.run(cmd_init_db(args))
    elif args.command == "seed":
        asyncio.run(cmd_seed(args))
    elif args.command == "serve":
        cmd_serve(args)
    elif args.command == "match":
        asyncio.run(cmd_match(args))


if __name__ == "__main__":
    main()
