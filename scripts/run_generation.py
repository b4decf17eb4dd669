#!/usr/bin/env python3
"""
Materialize recurring templates from the command line.

Reads settings through recurring_config.get_active_config() (packaged
defaults, RECURRING_CONFIG file, DATABASE_URL override).  Every command
runs in one transaction and commits on success.

Usage:
  python3 scripts/run_generation.py create-tables
  python3 scripts/run_generation.py generate-all [--through 2026-12-31] [--owner UUID ...]
  python3 scripts/run_generation.py generate TEMPLATE_ID --through 2026-12-31
  python3 scripts/run_generation.py preview TEMPLATE_ID --through 2026-12-31
  python3 scripts/run_generation.py run-scheduler

Exit status: 0 on success, 1 on a rejected request, 2 when a batch run had
failing templates.
"""

import argparse
import json
import sys
import time
from pathlib import Path
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Materialize recurring income/expense templates into ledger entries",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Configuration YAML (default: RECURRING_CONFIG or packaged defaults)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("create-tables", help="Create the engine's tables")

    p_all = sub.add_parser("generate-all", help="Generate every active template")
    p_all.add_argument("--through", default=None, help="Horizon YYYY-MM-DD (default: today)")
    p_all.add_argument(
        "--owner",
        action="append",
        type=UUID,
        default=None,
        help="Restrict to this owner id (repeatable)",
    )

    p_one = sub.add_parser("generate", help="Generate a single template")
    p_one.add_argument("template_id", type=UUID)
    p_one.add_argument("--through", required=True, help="Horizon YYYY-MM-DD")

    p_preview = sub.add_parser("preview", help="Show the dates that would be generated")
    p_preview.add_argument("template_id", type=UUID)
    p_preview.add_argument("--through", required=True, help="Horizon YYYY-MM-DD")

    sub.add_parser("run-scheduler", help="Generate on an interval until interrupted")

    return parser.parse_args(argv)


def _run_scheduler(config) -> int:
    from recurring_batch.services.executor import GenerationBatchExecutor
    from recurring_batch.services.scheduler import GenerationScheduler
    from recurring_kernel.db.engine import get_session_factory

    session_factory = get_session_factory()
    scheduler = GenerationScheduler(
        session_factory=session_factory,
        executor_factory=lambda session: GenerationBatchExecutor(
            session,
            marker=config.generation.marker,
            max_workers=config.batch.max_workers,
            session_factory=session_factory,
        ),
        horizon_days=config.scheduler.horizon_days,
        tick_interval_seconds=config.scheduler.tick_seconds,
    )
    scheduler.start()
    try:
        while scheduler.is_running:
            time.sleep(1.0)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from recurring_config import get_active_config
    from recurring_kernel.db.engine import create_tables, init_engine_from_url, session_scope
    from recurring_kernel.domain.dtos import AccessScope
    from recurring_kernel.exceptions import RecurringKernelError
    from recurring_kernel.logging_config import configure_logging

    config = get_active_config(args.config)
    configure_logging(level=config.logging.level)
    init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
        pool_timeout=config.database.pool_timeout,
        pool_recycle=config.database.pool_recycle,
    )

    if args.command == "create-tables":
        create_tables()
        print("tables created")
        return 0

    if args.command == "run-scheduler":
        return _run_scheduler(config)

    from recurring_batch.services.executor import GenerationBatchExecutor
    from recurring_kernel.services.materialization_service import MaterializationService

    try:
        with session_scope() as session:
            if args.command == "generate-all":
                scope = AccessScope.for_owners(*args.owner) if args.owner else None
                result = GenerationBatchExecutor(
                    session,
                    marker=config.generation.marker,
                ).generate_all(through_date=args.through, scope=scope)
                print(json.dumps({
                    "status": result.status.value,
                    "through_date": result.through_date.isoformat(),
                    "templates_processed": result.templates_processed,
                    "total_created": result.total_created,
                    "failures": [
                        {
                            "template_id": str(f.template_id),
                            "error_code": f.error_code,
                            "error_message": f.error_message,
                        }
                        for f in result.failures
                    ],
                }, indent=2))
                return 2 if result.failures else 0

            service = MaterializationService(session, marker=config.generation.marker)
            if args.command == "generate":
                created = service.generate_for_template(args.template_id, args.through)
                print(json.dumps({"template_id": str(args.template_id), "created": created}))
                return 0

            dates = service.preview(args.template_id, args.through)
            for d in dates:
                print(d.isoformat())
            return 0
    except RecurringKernelError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
