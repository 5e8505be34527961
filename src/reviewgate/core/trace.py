"""Trace Recorder: bounded, self-compacting event log kept in each session."""

from datetime import datetime
from typing import Any

from .state import EventType, TraceEvent


class TraceRecorder:
    """
    Appends trace events while keeping the log within ``max_events``.

    On overflow the earliest ``min(10, max_events // 2)`` events and the most
    recent events are kept, with a single ``trace_compacted`` marker between
    them carrying the running total of dropped events.
    """

    def __init__(self, max_events: int = 500) -> None:
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self.max_events = max_events

    @staticmethod
    def event(event_type: EventType, now: datetime, payload: dict[str, Any] | None = None) -> TraceEvent:
        return TraceEvent(timestamp=now, event_type=event_type, payload=payload or {})

    def append(self, trace: list[TraceEvent], event: TraceEvent) -> list[TraceEvent]:
        """Return a new trace with ``event`` appended and compacted if needed."""
        events = [*trace, event]
        if len(events) <= self.max_events:
            return events
        return self._compact(events, now=event.timestamp)

    def record(
        self,
        trace: list[TraceEvent],
        event_type: EventType,
        now: datetime,
        payload: dict[str, Any] | None = None,
    ) -> list[TraceEvent]:
        return self.append(trace, self.event(event_type, now, payload))

    def _compact(self, events: list[TraceEvent], now: datetime) -> list[TraceEvent]:
        keep_start = min(10, self.max_events // 2)
        keep_end = self.max_events - keep_start - 1

        # Earlier markers are folded into the new one so drift never compounds
        carried = 0
        real: list[TraceEvent] = []
        for ev in events:
            if ev.event_type == EventType.TRACE_COMPACTED:
                carried += int(ev.payload.get("dropped_events", 0))
            else:
                real.append(ev)

        head = real[:keep_start]
        tail = real[max(len(real) - keep_end, keep_start):] if keep_end > 0 else []
        dropped = len(real) - len(head) - len(tail) + carried

        marker = self.event(
            EventType.TRACE_COMPACTED,
            now,
            {"dropped_events": dropped, "kept_start": keep_start, "kept_end": keep_end},
        )
        return [*head, marker, *tail]
