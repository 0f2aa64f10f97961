"""Tool registration for the worklog timer MCP server."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Literal

from fastmcp import Context, FastMCP

from ..config import WorklogSettings
from ..ledger import PendingSubmission
from ..time_format import format_detailed, format_display, parse_tracker
from ..timer import TimerSnapshot
from ..tracking import WorklogSession
from ..triggers import HostEvents

logger = logging.getLogger(__name__)

TimerAction = Literal["start", "stop", "pause", "resume", "toggle", "reset"]
AdjustMode = Literal["add", "set", "multiply"]

_TRACKER_DURATION = re.compile(r"\s*(\d+h)?\s*(\d+m)?\s*(\d+s)?\s*")


@dataclass(slots=True)
class ToolHandles:
    timer_status: Any
    control_timer: Any
    adjust_time: Any
    submit_worklog: Any
    retry_pending: Any
    list_pending: Any
    discard_pending: Any
    select_work_item: Any
    resolve_work_item: Any
    assigned_items: Any
    focus_changed: Any
    workspace_activated: Any
    branch_changed: Any


def describe_snapshot(snapshot: TimerSnapshot) -> dict[str, Any]:
    return {
        "status": snapshot.state.value,
        "total_time_ms": snapshot.total_time_ms,
        "display": format_display(snapshot.total_time_ms),
        "detailed": format_detailed(snapshot.total_time_ms),
        "auto_paused_by_focus": snapshot.paused_by_focus,
        "auto_paused_by_workspace_switch": snapshot.paused_by_workspace_switch,
    }


def describe_pending(entry: PendingSubmission) -> dict[str, Any]:
    return {
        "id": entry.id,
        "work_item_key": entry.work_item_key,
        "time_spent_seconds": entry.time_spent_seconds,
        "display": format_display(entry.time_spent_seconds * 1000),
        "comment": entry.comment,
        "started_at": entry.started_at.isoformat(),
        "enqueued_at": entry.enqueued_at.isoformat(),
    }


def register_tools(
    server: FastMCP,
    *,
    session: WorklogSession,
    settings: WorklogSettings,
    events: HostEvents | None = None,
) -> ToolHandles:
    """Register the worklog timer's MCP tools on the server."""

    timer = session.timer
    if events is None:
        events = HostEvents.for_timer(
            timer,
            session.directory,
            settings.auto_pause_options(),
            workspace_id=settings.workspace_id,
            cleanup_interval=settings.branch_cleanup_interval,
        )

    def _timer_status(context: Context | None = None) -> dict[str, Any]:
        """Return the timer state and accumulated time."""

        payload = describe_snapshot(timer.snapshot())
        payload["pending_count"] = len(session.ledger.pending_submissions())
        payload["last_issue_key"] = session.ledger.last_issue_key()
        payload["last_comment"] = session.ledger.last_comment()
        return payload

    def _control_timer(action: TimerAction, context: Context | None = None) -> dict[str, Any]:
        """Apply a manual timer action."""

        handlers = {
            "start": timer.start,
            "stop": timer.stop,
            "pause": timer.pause,
            "resume": timer.resume,
            "toggle": timer.toggle,
            "reset": timer.reset,
        }
        try:
            handler = handlers[action]
        except KeyError as exc:
            raise ValueError(f"Unknown timer action '{action}'") from exc
        handler()
        snapshot = timer.snapshot()
        _emit_log(
            context,
            "info",
            "Timer action applied",
            extra={"action": action, "status": snapshot.state.value},
        )
        return describe_snapshot(snapshot)

    def _adjust_time(
        mode: AdjustMode,
        amount_ms: int | None = None,
        factor: float | None = None,
        duration: str | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Correct the accumulated time: add a delta, set a total, or multiply.

        ``duration`` accepts tracker text such as ``"2h 30m"`` in place of ``amount_ms``.
        """

        if mode == "multiply":
            if factor is None or factor < 0:
                raise ValueError("multiply requires a non-negative factor")
            timer.multiply_time(factor)
        elif mode in {"add", "set"}:
            if amount_ms is None and duration is not None:
                if not duration.strip() or _TRACKER_DURATION.fullmatch(duration) is None:
                    raise ValueError(f"Unrecognized duration '{duration}'; use e.g. '2h 30m'")
                amount_ms = parse_tracker(duration)
            if amount_ms is None:
                raise ValueError(f"{mode} requires amount_ms or duration")
            if mode == "add":
                timer.add_time(amount_ms)
            else:
                timer.set_total_time(amount_ms)
        else:
            raise ValueError(f"Unknown adjust mode '{mode}'")

        snapshot = timer.snapshot()
        _emit_log(
            context,
            "info",
            "Timer adjusted",
            extra={"mode": mode, "total_time_ms": snapshot.total_time_ms},
        )
        return describe_snapshot(snapshot)

    def _submit_worklog(
        work_item_key: str,
        comment: str | None = None,
        branch_name: str | None = None,
        time_spent_ms: int | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Submit the accumulated time to the tracker, queueing it while offline."""

        result = session.submit_elapsed(
            work_item_key,
            comment,
            branch_name=branch_name,
            time_spent_ms=time_spent_ms,
        )
        response: dict[str, Any] = {"status": result.status.value, "work_item_key": work_item_key}
        if result.entry is not None:
            response["entry"] = result.entry.model_dump()
        if result.pending is not None:
            response["pending"] = describe_pending(result.pending)

        _emit_log(context, "info", "Worklog submitted", extra=response)
        return response

    def _retry_pending(context: Context | None = None) -> dict[str, Any]:
        """Attempt delivery of every queued worklog now."""

        report = session.require_queue().retry_pending()
        response = {
            "attempted": report.attempted,
            "delivered": [entry.id for entry in report.delivered],
            "rejected": [entry.id for entry in report.rejected],
            "still_pending": [entry.id for entry in report.still_pending],
        }
        _emit_log(context, "debug", "Retried pending worklogs", extra=response)
        return response

    def _list_pending(context: Context | None = None) -> list[dict[str, Any]]:
        """List worklogs waiting for the tracker to become reachable."""

        return [describe_pending(entry) for entry in session.ledger.pending_submissions()]

    def _discard_pending(entry_id: str, context: Context | None = None) -> dict[str, Any]:
        """Remove a queued worklog without submitting it."""

        removed = session.require_queue().discard(entry_id)
        if not removed:
            raise ValueError(f"Unknown pending worklog '{entry_id}'")
        _emit_log(context, "warning", "Pending worklog discarded", extra={"entry_id": entry_id})
        return {"entry_id": entry_id, "discarded": True}

    def _select_work_item(
        work_item_key: str,
        branch_name: str | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Remember the work item for the branch and as the global fallback."""

        session.select_work_item(work_item_key, branch_name)
        _emit_log(
            context,
            "info",
            "Work item selected",
            extra={"work_item_key": work_item_key, "branch": branch_name},
        )
        return {"work_item_key": work_item_key.strip(), "branch": branch_name}

    def _resolve_work_item(
        branch_name: str | None = None,
        use_branch_name: bool = False,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Look up the remembered work item for a branch."""

        if use_branch_name:
            key = session.directory.suggest(branch_name)
        else:
            key = session.directory.resolve(branch_name)
        return {"branch": branch_name, "work_item_key": key}

    def _assigned_items(context: Context | None = None) -> dict[str, Any]:
        """List work items assigned to the current user."""

        result = session.assigned_items()
        _emit_log(context, "debug", "Listed assigned work items", extra={"count": result.total})
        return result.model_dump()

    def _focus_changed(
        focused: bool,
        workspace_id: str | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Report that the host window lost or regained focus."""

        changed = events.focus_changed(focused, workspace_id)
        snapshot = timer.snapshot()
        if changed:
            _emit_log(
                context,
                "info",
                "Focus change applied",
                extra={"focused": focused, "status": snapshot.state.value},
            )
        return {"focused": focused, "changed": changed, **describe_snapshot(snapshot)}

    def _workspace_activated(workspace_id: str, context: Context | None = None) -> dict[str, Any]:
        """Report that the user switched to a workspace."""

        paused = events.workspace_activated(workspace_id)
        snapshot = timer.snapshot()
        if paused:
            _emit_log(
                context,
                "info",
                "Timer paused by workspace switch",
                extra={"workspace_id": workspace_id},
            )
        return {"workspace_id": workspace_id, "paused": paused, **describe_snapshot(snapshot)}

    def _branch_changed(
        branch_name: str,
        repository_root: str = ".",
        live_branches: list[str] | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Report the repository's current branch and, optionally, every live branch."""

        changed = events.branch_reported(repository_root, branch_name, live_branches)
        snapshot = timer.snapshot()
        response = {
            "branch": branch_name,
            "repository_root": repository_root,
            "changed": changed,
            "work_item_key": session.directory.resolve(branch_name),
            **describe_snapshot(snapshot),
        }
        if changed:
            _emit_log(
                context,
                "info",
                "Branch change applied",
                extra={"branch": branch_name, "work_item_key": response["work_item_key"]},
            )
        return response

    tool_status = server.tool(
        name="timer_status",
        description="Show the worklog timer state, accumulated time and queued worklog count.",
    )(_timer_status)

    tool_control = server.tool(
        name="control_timer",
        description="Start, stop, pause, resume, toggle or reset the worklog timer.",
    )(_control_timer)

    tool_adjust = server.tool(
        name="adjust_time",
        description=(
            "Correct accumulated time. mode=add takes a signed amount_ms, mode=set takes "
            "the new total in amount_ms, mode=multiply takes a factor. add and set also "
            "accept a duration such as '2h 30m' instead of amount_ms."
        ),
    )(_adjust_time)

    tool_submit = server.tool(
        name="submit_worklog",
        description=(
            "Submit the accumulated time as a worklog on the given work item. If the "
            "tracker is unreachable the worklog is queued and retried automatically."
        ),
        annotations={
            "safety": {
                "level": "caution",
                "notes": "Resets the timer once the worklog is delivered or queued",
            }
        },
    )(_submit_worklog)

    tool_retry = server.tool(
        name="retry_pending",
        description="Retry delivery of queued worklogs immediately.",
    )(_retry_pending)

    tool_list_pending = server.tool(
        name="list_pending",
        description="List worklogs queued while the tracker was unreachable.",
    )(_list_pending)

    tool_discard = server.tool(
        name="discard_pending",
        description="Delete a queued worklog without submitting it.",
    )(_discard_pending)

    tool_select = server.tool(
        name="select_work_item",
        description="Remember a work item for a branch (and as the global fallback).",
    )(_select_work_item)

    tool_resolve = server.tool(
        name="resolve_work_item",
        description=(
            "Return the remembered work item for a branch, falling back to the last used one. "
            "Set use_branch_name to also parse an issue key out of the branch name."
        ),
    )(_resolve_work_item)

    tool_assigned = server.tool(
        name="assigned_items",
        description="List work items assigned to the current user in the tracker.",
    )(_assigned_items)

    tool_focus = server.tool(
        name="focus_changed",
        description=(
            "Report a host window focus change. Losing focus auto-pauses a running timer; "
            "regaining it resumes only a timer that focus loss paused."
        ),
    )(_focus_changed)

    tool_workspace = server.tool(
        name="workspace_activated",
        description="Report the workspace the user switched to; leaving this workspace auto-pauses its timer.",
    )(_workspace_activated)

    tool_branch = server.tool(
        name="branch_changed",
        description=(
            "Report the current branch of a repository. A real change pauses the timer and "
            "restores the work item remembered for the branch. Pass live_branches so stale "
            "branch mappings can be pruned."
        ),
    )(_branch_changed)

    logger.debug(
        "Registered worklog tools",
        extra={"tracker_available": session.tracker_available, "ledger": str(settings.ledger_path)},
    )

    return ToolHandles(
        timer_status=tool_status,
        control_timer=tool_control,
        adjust_time=tool_adjust,
        submit_worklog=tool_submit,
        retry_pending=tool_retry,
        list_pending=tool_list_pending,
        discard_pending=tool_discard,
        select_work_item=tool_select,
        resolve_work_item=tool_resolve,
        assigned_items=tool_assigned,
        focus_changed=tool_focus,
        workspace_activated=tool_workspace,
        branch_changed=tool_branch,
    )


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)


__all__ = ["ToolHandles", "describe_pending", "describe_snapshot", "register_tools"]
