"""
Project activity log in NDJSON format.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from .state import get_project_dir


def emit_event(project_id: str, event_type: str, data: Dict[str, Any]) -> None:
    """
    Append an event to the project's events.ndjson file.

    Args:
        project_id: Project ID
        event_type: Event type (e.g., "PROJECT_SAVED", "SCAN_COMPLETED")
        data: Event data
    """
    project_dir = get_project_dir(project_id)
    project_dir.mkdir(parents=True, exist_ok=True)

    event = {
        "ts": datetime.now().isoformat(),
        "type": event_type,
        "data": data,
    }

    with open(project_dir / "events.ndjson", "a") as f:
        f.write(json.dumps(event) + "\n")


def read_events(project_id: str) -> List[Dict[str, Any]]:
    """
    Read all events of a project.

    Returns:
        List of events, oldest first
    """
    events_file = get_project_dir(project_id) / "events.ndjson"

    if not events_file.exists():
        return []

    events = []
    with open(events_file, "r") as f:
        for line in f:
            line = line.strip()
            if line:
                try:
                    events.append(json.loads(line))
                except json.JSONDecodeError:
                    continue  # Skip malformed lines

    return events


def get_last_event(project_id: str) -> Optional[Dict[str, Any]]:
    events = read_events(project_id)
    return events[-1] if events else None


class EventTypes:
    PROJECT_SAVED = "PROJECT_SAVED"
    SCAN_COMPLETED = "SCAN_COMPLETED"
    AUTOFIX_APPLIED = "AUTOFIX_APPLIED"
