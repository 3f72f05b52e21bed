"""
Ledger audit: main entry point.

    python -m ledger_audit sync
    python -m ledger_audit replay
    python -m ledger_audit reconcile

Exit codes: 0 success / verified, 1 discrepancies or failed check,
2 run aborted by an error.
"""
import argparse
import sys

from .core.config import AuditConfig
from .core.errors import LedgerAuditError, StatsCheckFailed
from .core.identity import Principal
from .core.logger import configure_logging, get_logger
from .replay.policy import DEBIT_POLICIES
from .replay.queries import WHALE_THRESHOLD, format_xtc
from .runner import AuditRunner

EXIT_OK = 0
EXIT_DISCREPANCIES = 1
EXIT_ERROR = 2

logger = get_logger("ledger_audit")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger_audit",
        description="Transaction history sync, replay and balance reconciliation",
    )
    parser.add_argument("--backup-dir", help="History store directory (default: backup)")
    parser.add_argument("--snapshot-dir", help="Balance snapshot directory (default: snapshot)")
    parser.add_argument("--source-url", help="JSON gateway URL of the ledger")
    parser.add_argument("--redis-url", help="Keep the balance snapshot in redis instead of a file")
    parser.add_argument("--debit-policy", choices=sorted(DEBIT_POLICIES), help="Debit rule used by replay")
    parser.add_argument("--log-level", help="Log level (default: INFO)")

    sub = parser.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="Fetch new history events into the store")
    sync.add_argument("--target", type=int, help="Sync up to this event count (default: remote history_events)")
    sync.add_argument("--page-size", type=int, default=1, help="Events per request (default: 1, point fetch)")

    sub.add_parser("replay", help="Replay stored history into balances")
    sub.add_parser("reconcile", help="Verify replayed balances against the balance snapshot")
    sub.add_parser("check-stats", help="Sanity-check the remote aggregate stats")

    history = sub.add_parser("user-history", help="List stored events involving a principal")
    history.add_argument("principal")

    whales = sub.add_parser("whales", help="Accounts holding more than a threshold")
    whales.add_argument("--threshold", type=int, default=WHALE_THRESHOLD, help="Threshold in cycles (default: 100 XTC)")

    return parser


def cmd_sync(runner: AuditRunner, args) -> int:
    print("Starting backup of live transaction history")

    def progress(index: int, target: int):
        print(f"Storing {index} ({target})")

    try:
        report = runner.sync(args.target, page_size=args.page_size, on_progress=progress)
    except LedgerAuditError as e:
        stored = runner.store.highest_stored_index()
        print(f"Sync aborted: {e}")
        print(f"Stored through #{stored}" if stored is not None else "Nothing stored yet")
        print("Rerun sync to resume at the next index")
        return EXIT_ERROR

    print(report.summary())
    return EXIT_OK


def cmd_replay(runner: AuditRunner, args) -> int:
    result = runner.replay()
    for principal, amount in sorted(result.ledger.items()):
        print(f"{principal.to_text()} {amount}")
    print()
    print(result.summary())
    print(f"Digest: {result.digest}")
    return EXIT_OK


def cmd_reconcile(runner: AuditRunner, args) -> int:
    report = runner.reconcile()

    for discrepancy in report.discrepancies.values():
        observed = "missing" if discrepancy.observed is None else discrepancy.observed
        delta = "" if discrepancy.delta is None else f" delta={discrepancy.delta}"
        print(f"MISMATCH {discrepancy.identity.to_text()} expected={discrepancy.expected} observed={observed}{delta}")

    print()
    print(f"Differences {len(report.discrepancies)}")
    print(report.summary())

    if report.is_verified():
        print("All balances verified based on backup")
        return EXIT_OK

    print("Not all balances matched expectations. Please rerun sync and reconcile.")
    return EXIT_DISCREPANCIES


def cmd_check_stats(runner: AuditRunner, args) -> int:
    try:
        stats = runner.check_stats()
    except StatsCheckFailed as e:
        print(str(e))
        return EXIT_DISCREPANCIES
    print(stats.model_dump_json(indent=2))
    print("Stats checks passed")
    return EXIT_OK


def cmd_user_history(runner: AuditRunner, args) -> int:
    principal = Principal.from_text(args.principal)
    print(f"User history for {principal.to_text()}")
    print()
    count = 0
    for event in runner.user_history(principal):
        print(f"#{event.index} {event.kind.tag} cycles={event.cycles} fee={event.fee} timestamp={event.timestamp}")
        count += 1
    print()
    print(f"{count} events")
    return EXIT_OK


def cmd_whales(runner: AuditRunner, args) -> int:
    holders = runner.whales(args.threshold)
    print(f"Accounts holding more than {format_xtc(args.threshold)}: {len(holders)}")
    print()
    for principal, amount in holders:
        print(f"{format_xtc(amount)} - {principal.to_text()}")
    return EXIT_OK


COMMANDS = {
    "sync": cmd_sync,
    "replay": cmd_replay,
    "reconcile": cmd_reconcile,
    "check-stats": cmd_check_stats,
    "user-history": cmd_user_history,
    "whales": cmd_whales,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    runner = None
    try:
        config = AuditConfig.from_env(
            backup_dir=args.backup_dir,
            snapshot_dir=args.snapshot_dir,
            source_url=args.source_url,
            redis_url=args.redis_url,
            debit_policy=args.debit_policy,
            log_level=args.log_level,
        )
        configure_logging(config.log_level)
        logger.info("run_started", command=args.command, config_hash=config.config_hash)

        runner = AuditRunner(config)
        return COMMANDS[args.command](runner, args)
    except (LedgerAuditError, ValueError) as e:
        # ValueError: bad configuration or arguments (debit policy, timeout, page size).
        logger.error("run_failed", command=args.command, error=str(e))
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        if runner is not None:
            runner.close()


if __name__ == "__main__":
    sys.exit(main())
