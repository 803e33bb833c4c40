"""Constants and test doubles shared across the test suite."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

TENANT_ID = "tenant-a"
OTHER_TENANT_ID = "tenant-b"
TENANT_HEADERS = {"X-Tenant-ID": TENANT_ID}

# Saturday; the following Monday is 2024-06-03
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
MONDAY_0900 = datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc)

# Monday 09:00-17:00
MONDAY_RULES = ((1, 9 * 60, 17 * 60),)


class RecordingPublisher:
    """EventPublisher that keeps every published event in memory."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        self.events.append((event_name, payload))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def payloads(self, event_name: str) -> List[Dict[str, Any]]:
        return [payload for name, payload in self.events if name == event_name]
