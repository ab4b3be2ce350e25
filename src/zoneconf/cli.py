"""Command line interface for the zone confidence engine."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from zoneconf.config.loader import configure_from_cli
from zoneconf.config.settings import Settings, set_settings
from zoneconf.data.store import SqliteZoneStore
from zoneconf.domain.exceptions import (
    ConfigurationError,
    SweepError,
    ValidationError,
    ZoneConfError,
)
from zoneconf.domain.models import IntelType
from zoneconf.classification.classifier import ZoneStateClassifier
from zoneconf.processing.intake import IntelIntake
from zoneconf.results.display import summarise_prices, summarise_zone, format_confidence_display
from zoneconf.runners.daily_sweep import DailySweepRunner
from zoneconf.utils.clock import parse_timestamp, utcnow
from zoneconf.utils.logging import setup_logging


def _add_common_options(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--db",
        type=str,
        metavar="PATH",
        help="Path to the zone SQLite DB. If omitted, a per-user default is chosen.",
    )
    p.add_argument(
        "--no-wal",
        action="store_true",
        help="Use rollback journaling instead of WAL.",
    )
    debug_group = p.add_argument_group("Debug Options")
    debug_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode with verbose logging.",
    )
    debug_group.add_argument(
        "--quiet",
        action="store_true",
        help="Only log errors to the console.",
    )
    debug_group.add_argument(
        "--log-dir",
        type=str,
        metavar="PATH",
        help="Also write logs to a timestamped file in this directory.",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the zoneconf CLI."""
    parser = argparse.ArgumentParser(
        prog="zoneconf",
        description="Score how trustworthy crowd-sourced intel about each zone is.",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    init_p = sub.add_parser("init-db", help="Create the zone database if missing")
    _add_common_options(init_p)

    submit_p = sub.add_parser("submit", help="Submit one piece of intel for a zone")
    _add_common_options(submit_p)
    submit_p.add_argument("zone_id", help="Zone identifier")
    submit_p.add_argument(
        "intel_type",
        type=str.upper,
        choices=[t.value for t in IntelType],
        help="Kind of report",
    )
    submit_p.add_argument("-u", "--user", required=True, help="Submitting user id")
    submit_p.add_argument(
        "-k",
        "--karma",
        type=float,
        help="Submitter karma; omitted means unknown (lowest trust).",
    )
    submit_p.add_argument(
        "--data",
        type=str,
        default="{}",
        metavar="JSON",
        help='Payload as JSON, e.g. \'{"item": "coffee", "price": 3.5}\'.',
    )
    submit_p.add_argument(
        "--retry-attempts",
        type=int,
        metavar="N",
        help="Retries after a concurrent update (default: 3).",
    )
    submit_p.add_argument("--now", type=str, metavar="ISO8601", help="Override the clock.")

    sweep_p = sub.add_parser("sweep", help="Run the daily decay sweep over all zones")
    _add_common_options(sweep_p)
    sweep_p.add_argument(
        "--chunk-size",
        type=int,
        metavar="N",
        help="Zones per logged chunk (default: 500).",
    )
    sweep_p.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar.",
    )
    sweep_p.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute the sweep without writing any state.",
    )
    sweep_p.add_argument("--now", type=str, metavar="ISO8601", help="Override the clock.")

    show_p = sub.add_parser("show", help="Show a zone's confidence")
    _add_common_options(show_p)
    show_p.add_argument("zone_id", help="Zone identifier")
    show_p.add_argument("--json", action="store_true", help="Print the full stored state as JSON.")
    show_p.add_argument("--now", type=str, metavar="ISO8601", help="Override the clock.")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the zoneconf CLI."""
    args = build_parser().parse_args(argv)
    debug = bool(getattr(args, "debug", False))

    try:
        settings = configure_from_cli(args)
        set_settings(settings)

        logger, _ = setup_logging(
            log_dir=str(settings.logging.log_dir) if settings.logging.log_dir else None,
            console=True,
            level=settings.logging.level.value,
            quiet_console=not settings.logging.console_output,
        )
        if settings.debug_mode:
            logger.debug("Configuration details:")
            for section, values in settings.to_dict().items():
                logger.debug("  %s: %s", section, values)

        handler = {
            "init-db": _cmd_init_db,
            "submit": _cmd_submit,
            "sweep": _cmd_sweep,
            "show": _cmd_show,
        }[args.cmd]
        sys.exit(handler(args, settings))

    except ConfigurationError as e:
        logging.error("Configuration error: %s", e.message)
        for suggestion in e.suggestions:
            logging.error("  - %s", suggestion)
        sys.exit(1)

    except ValidationError as e:
        logging.error("Invalid input: %s", e)
        sys.exit(2)

    except SweepError as e:
        logging.error("Sweep failed: %s", e)
        sys.exit(3)

    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        sys.exit(130)

    except (ZoneConfError, FileNotFoundError) as e:
        logging.error("zoneconf failed: %s", e)
        if debug:
            logging.exception("Full traceback:")
        sys.exit(1)


def _open_store(settings: Settings, *, must_exist: bool = False) -> SqliteZoneStore:
    db = settings.database
    return SqliteZoneStore.open(
        db.path,
        use_wal=db.use_wal,
        busy_timeout_ms=db.busy_timeout_ms,
        must_exist=must_exist,
    )


def _parse_now(args):
    if getattr(args, "now", None):
        try:
            return parse_timestamp(args.now)
        except ValueError:
            raise ValidationError(
                f"Not an ISO-8601 timestamp: {args.now!r}",
                field_name="now",
                field_value=args.now,
            ) from None
    return utcnow()


def _cmd_init_db(args, settings: Settings) -> int:
    with _open_store(settings) as store:
        counts = store.count_by_state()
    print(f"Zone database ready ({sum(counts.values())} zones)")
    return 0


def _cmd_submit(args, settings: Settings) -> int:
    try:
        data = json.loads(args.data)
    except json.JSONDecodeError as e:
        raise ValidationError(
            f"--data is not valid JSON: {e}", field_name="data", field_value=args.data
        ) from None
    if not isinstance(data, dict):
        raise ValidationError("--data must be a JSON object", field_name="data", field_value=args.data)

    with _open_store(settings) as store:
        intake = IntelIntake(
            store,
            config=settings.confidence,
            retry_attempts=settings.processing.retry_attempts,
        )
        result = intake.submit(
            args.zone_id, args.user, args.intel_type, data,
            karma=args.karma, now=_parse_now(args),
        )

    state = result.state
    display = format_confidence_display(state)
    print(f"{state.zone_id}: {state.score:.1f} {display['label']} [{state.state.value}]")
    print(f"  +{result.karma_earned} karma")
    for name, value in result.factors.as_dict().items():
        print(f"  {name:<17} {value:8.2f}")
    return 0


def _cmd_sweep(args, settings: Settings) -> int:
    with _open_store(settings) as store:
        report = DailySweepRunner(store, settings).run(_parse_now(args))

    print(
        f"Swept {report.zones_scanned} zones: {report.zones_decayed} decayed, "
        f"{report.zones_unchanged} unchanged, {report.zones_failed} failed, "
        f"{report.hazards_expired} hazards expired"
        + (" (dry run)" if report.dry_run else "")
    )
    return 0 if not report.failed else 4


def _cmd_show(args, settings: Settings) -> int:
    now = _parse_now(args)
    with _open_store(settings, must_exist=True) as store:
        state = store.fetch_state(args.zone_id)
        prices = summarise_prices(store.list_price_baselines(args.zone_id))
    if state is None:
        print(f"{args.zone_id}: no intel recorded")
        return 1

    state = ZoneStateClassifier(settings.confidence).reclassify(state, now)
    if args.json:
        payload = state.to_dict()
        payload["prices"] = prices
        print(json.dumps(payload, indent=2, sort_keys=True))
        return 0

    summary = summarise_zone(state, now)
    print(f"{summary['zone_id']}: {summary['score']:.1f} {summary['label']} [{summary['state']}]")
    print(f"  {summary['last_verified']}")
    if summary["status"]:
        print(f"  {summary['status']}")
    for row in prices:
        print(
            f"  price {row['item']}: avg {row['average_price']:.2f} "
            f"({row['report_count']} reports, {row['min_price']:.2f}-{row['max_price']:.2f})"
        )
    return 0


if __name__ == "__main__":
    main()
