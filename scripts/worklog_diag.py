"""Worklog timer diagnostics CLI."""

from __future__ import annotations

import argparse
import json

from worklog_timer.config import WorklogSettings
from worklog_timer.ledger import Ledger, LedgerError
from worklog_timer.time_format import format_detailed, format_display


def load_ledger(settings: WorklogSettings) -> Ledger:
    try:
        return Ledger(settings.ledger_path)
    except LedgerError as exc:
        print(f"Ledger unavailable: {exc}")
        raise SystemExit(1)


def cmd_status(args: argparse.Namespace) -> None:
    ledger = load_ledger(WorklogSettings())
    state = ledger.snapshot()
    payload = {
        "status": state.status.value,
        "total_time_ms": state.total_time_ms,
        "display": format_display(state.total_time_ms),
        "detailed": format_detailed(state.total_time_ms),
        "auto_paused_by_focus": state.auto_paused_by_focus,
        "auto_paused_by_workspace_switch": state.auto_paused_by_workspace_switch,
        "last_issue_key": state.last_issue_key,
        "pending_count": len(state.pending_submissions),
        "branch_count": len(state.branch_issues),
    }
    print(json.dumps(payload, indent=2))


def cmd_pending(args: argparse.Namespace) -> None:
    ledger = load_ledger(WorklogSettings())
    pending = ledger.pending_submissions()
    if args.json:
        print(json.dumps([entry.model_dump(mode="json") for entry in pending], indent=2))
        return
    if not pending:
        print("No pending worklogs")
        return
    for entry in pending:
        print(
            f"{entry.id} {entry.work_item_key} "
            f"{format_display(entry.time_spent_seconds * 1000)} "
            f"(queued {entry.enqueued_at.isoformat()})"
        )


def cmd_branches(args: argparse.Namespace) -> None:
    ledger = load_ledger(WorklogSettings())
    print(json.dumps(ledger.branch_issues(), indent=2, sort_keys=True))


def cmd_prune(args: argparse.Namespace) -> None:
    ledger = load_ledger(WorklogSettings())
    live = {name.strip() for name in (args.live or "").split(",") if name.strip()}
    removed = ledger.cleanup_deleted_branches(live)
    print(json.dumps({"removed": removed, "remaining": len(ledger.branch_issues())}, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Worklog timer diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_status = sub.add_parser("status", help="Show the persisted timer state")
    p_status.set_defaults(func=cmd_status)

    p_pending = sub.add_parser("pending", help="List worklogs waiting for delivery")
    p_pending.add_argument("--json", action="store_true", help="Output JSON")
    p_pending.set_defaults(func=cmd_pending)

    p_branches = sub.add_parser("branches", help="Show branch to work item mappings")
    p_branches.set_defaults(func=cmd_branches)

    p_prune = sub.add_parser(
        "prune",
        help="Drop branch mappings for branches that no longer exist",
    )
    p_prune.add_argument(
        "--live",
        default="",
        help="Comma-separated names of branches that still exist",
    )
    p_prune.set_defaults(func=cmd_prune)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
