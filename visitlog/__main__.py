#!/usr/bin/env python3
"""
Visit Version History Engine

Local demonstration: 23 single-field edits to one visit, then the
history view, one expanded snapshot and an erase.

Usage:
    python -m visitlog

    # Or with custom config
    VISITLOG_BATCH_SIZE=5 VISITLOG_LOG_JSON=false python -m visitlog
"""

from __future__ import annotations

import asyncio
import sys
from typing import Any

from visitlog.core.config import VisitLogConfig
from visitlog.history.events import Editor
from visitlog.history.service import create_service
from visitlog.history.text import truncate
from visitlog.observability.logging import LogLevel, setup_logging
from visitlog.observability.metrics import MetricsCollector


VISIT_ID = "visit-42"
EDIT_COUNT = 23


def _edit_sequence(count: int) -> list[dict[str, Any]]:
    """Visit states where each step changes exactly one tracked field."""
    states: list[dict[str, Any]] = [{"agenda": "", "debrief": "", "notes": []}]
    for step in range(1, count + 1):
        state = {**states[-1], "notes": list(states[-1]["notes"])}
        if step % 3 == 1:
            state["agenda"] = f"<p>Agenda draft {step}</p>"
        elif step % 3 == 2:
            state["debrief"] = f"<p>Debrief after step {step}</p>"
        else:
            state["notes"].append({"id": f"note-{step}", "text": f"Follow-up&nbsp;{step}"})
        states.append(state)
    return states


async def demo_local_mode() -> None:
    print("\n" + "=" * 60)
    print("Visit Version History - Local Demo")
    print("=" * 60 + "\n")

    config_result = VisitLogConfig.from_env()
    if config_result.is_err():
        print(f"Configuration error: {config_result.error}")
        sys.exit(1)
    config = config_result.unwrap()

    setup_logging(
        LogLevel.parse(config.observability.log_level),
        json_output=config.observability.log_json,
    )
    print("✓ Configuration loaded and validated")
    print(f"  Backend: {config.storage.backend.name}")
    print(f"  Batch size: {config.history.batch_size}")
    print(f"  Compaction: {config.history.compaction_mode.value}")

    service_result = await create_service(config)
    if service_result.is_err():
        print(f"Storage error: {service_result.error}")
        sys.exit(1)
    service = service_result.unwrap()

    editor = Editor.from_profile("user-1", {"email": "ana@example.com"})
    states = _edit_sequence(EDIT_COUNT)
    for before, after in zip(states, states[1:]):
        outcome = await service.capture(VISIT_ID, before, after, editor)
        if outcome.error is not None:
            print(f"  ✗ capture failed: {outcome.error}")
    await service.drain()
    print(f"\n✓ Captured {EDIT_COUNT} edits to {VISIT_ID}")

    view = (await service.list_history(VISIT_ID)).unwrap()
    print(f"\nSnapshots ({len(view.snapshots)}):")
    for snapshot in view.snapshots:
        print(f"  {snapshot.title}: {snapshot.event_count} events ({snapshot.summary})")
    print(f"Recent edits ({len(view.recent_events)}):")
    for event in view.recent_events:
        print(f"  {event.type.label}: {truncate(event.after_value, 40)!r} by {event.user_name}")

    if view.snapshots:
        oldest = view.snapshots[-1]
        events = (await service.expand_snapshot(VISIT_ID, oldest.id)).unwrap()
        print(f"\n{oldest.title} expands to:")
        for event in events:
            print(f"  {event.type.label}: {truncate(event.before_value, 30)!r} -> "
                  f"{truncate(event.after_value, 30)!r}")

    erased = await service.erase_history(VISIT_ID)
    if erased.is_err():
        print(f"\n✗ Erase failed: {erased.error}")
    else:
        print(f"\n✓ Erased: {erased.unwrap().to_dict()}")

    if config.observability.metrics_enabled:
        print("\nMetrics:")
        print(MetricsCollector.get_instance().export_prometheus())

    await service.close()


def main() -> None:
    asyncio.run(demo_local_mode())


if __name__ == "__main__":
    main()
