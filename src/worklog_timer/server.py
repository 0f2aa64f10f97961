"""FastMCP server bootstrap for the worklog timer."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastmcp import Context, FastMCP

from . import __version__
from .branches import BranchIssueDirectory
from .clock import SystemClock
from .config import WorklogSettings, get_settings
from .ledger import Ledger
from .notifications import RECENT_NOTIFICATION_LIMIT, LoggingNotifier, RecordingNotifier
from .submissions import OfflineSubmissionQueue
from .time_format import format_display
from .timer import TimerService
from .tools import describe_snapshot, register_tools
from .tracker import TrackerClient, TrackerFactoryError, load_tracker
from .tracking import WorklogSession
from .triggers import HostEvents


def configure_logging(level: str) -> None:
    """Configure root logging for the worklog timer server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def create_server(
    settings: Optional[WorklogSettings] = None,
    tracker: TrackerClient | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server with the timer, queue and branch directory wired up."""

    settings = settings or get_settings()
    clock = SystemClock()

    tracker_metadata: dict[str, Any] = {
        "available": False,
        "url": settings.tracker_url or None,
        "credentials": settings.has_credentials(),
        "factory": settings.tracker_factory,
        "error": None,
    }

    if tracker is None:
        try:
            tracker = load_tracker(settings)
        except TrackerFactoryError as exc:
            tracker_metadata["error"] = str(exc)
            tracker = None
        else:
            if tracker is None:
                tracker_metadata["error"] = "No tracker factory configured"
    tracker_metadata["available"] = tracker is not None

    ledger = Ledger(settings.ledger_path)
    notifier = RecordingNotifier(limit=RECENT_NOTIFICATION_LIMIT, forward_to=LoggingNotifier())
    timer = TimerService(
        ledger,
        clock=clock,
        options=settings.auto_pause_options(),
        tick_interval_ms=settings.tick_interval_ms,
        sleep_threshold_ms=settings.sleep_threshold_ms,
    )
    queue: OfflineSubmissionQueue | None = None
    if tracker is not None:
        queue = OfflineSubmissionQueue(
            ledger,
            tracker,
            notifier=notifier,
            clock=clock,
            retry_interval_seconds=settings.retry_interval_seconds,
        )
    directory = BranchIssueDirectory(ledger)
    session = WorklogSession(ledger, timer, directory, queue, tracker, clock=clock)
    events = HostEvents.for_timer(
        timer,
        directory,
        settings.auto_pause_options(),
        workspace_id=settings.workspace_id,
        cleanup_interval=settings.branch_cleanup_interval,
    )

    server = FastMCP(
        name="Worklog Timer MCP",
        version=__version__,
        instructions=(
            "Tracks time spent on tracker work items. Use the timer tools to start, "
            "pause and correct the clock, then submit_worklog to log the time. "
            "Worklogs submitted while offline are queued and retried automatically."
        ),
    )

    handles = register_tools(server, session=session, settings=settings, events=events)

    @server.resource(
        "resource://worklog/status",
        name="worklog_status",
        title="Worklog Timer Status",
        description="Provides the current timer, queue and branch mapping state.",
        mime_type="application/json",
        tags={"status", "health"},
    )
    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing the timer and the offline queue."""

        snapshot = timer.snapshot()
        pending = ledger.pending_submissions()
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server_version": __version__,
            "log_level": settings.log_level,
            "ledger_path": str(settings.ledger_path),
            "timer": describe_snapshot(snapshot),
            "auto_pause": {
                "focus_loss": settings.pause_on_focus_loss,
                "branch_change": settings.pause_on_branch_change,
                "workspace_switch": settings.pause_on_workspace_switch,
                "system_sleep": settings.pause_on_system_sleep,
            },
            "tracker": tracker_metadata,
            "queue": {
                "pending_count": len(pending),
                "pending_seconds": sum(entry.time_spent_seconds for entry in pending),
                "pending_display": format_display(
                    sum(entry.time_spent_seconds for entry in pending) * 1000
                ),
                "oldest_enqueued_at": pending[0].enqueued_at.isoformat() if pending else None,
                "retry_interval_seconds": settings.retry_interval_seconds,
            },
            "work_items": {
                "last_issue_key": ledger.last_issue_key(),
                "last_comment": ledger.last_comment(),
                "branch_count": len(ledger.branch_issues()),
            },
            "notifications": [
                {"message": item.message, "level": item.level.value}
                for item in notifier.recent(5)
            ],
            "request_id": getattr(context, "request_id", None),
        }
        return json.dumps(payload)

    setattr(server, "ledger", ledger)
    setattr(server, "timer_service", timer)
    setattr(server, "submission_queue", queue)
    setattr(server, "branch_directory", directory)
    setattr(server, "worklog_session", session)
    setattr(server, "host_events", events)
    setattr(server, "notifier", notifier)
    setattr(server, "tracker_client", tracker)
    setattr(server, "tracker_metadata", tracker_metadata)
    setattr(server, "tool_handles", handles)
    return server


def main() -> None:
    """Entry point for running the worklog timer MCP server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    timer: TimerService = getattr(server, "timer_service")
    queue: OfflineSubmissionQueue | None = getattr(server, "submission_queue")
    logging.getLogger(__name__).info(
        "Launching worklog timer MCP server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "ledger_path": str(settings.ledger_path),
            "tracker_available": getattr(server, "tracker_metadata", {}).get("available"),
        },
    )

    timer.start_ticking()
    if queue is not None:
        queue.start()
    try:
        server.run()
    finally:
        if queue is not None:
            queue.shutdown()
        timer.shutdown()


if __name__ == "__main__":
    main()
