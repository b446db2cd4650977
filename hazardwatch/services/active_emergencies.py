"""In-memory set of emergencies the engine is currently tracking."""

from collections.abc import Iterator

from hazardwatch.core.alerting.models import Emergency


class ActiveEmergencies:
    """Emergencies by id, in arrival order.

    Holds ACTIVE and ACKNOWLEDGED emergencies; dismissal removes an
    emergency entirely. Values are frozen, so a transition is a ``put``
    of the new value.
    """

    def __init__(self) -> None:
        self._by_id: dict[str, Emergency] = {}

    def get(self, emergency_id: str) -> Emergency | None:
        return self._by_id.get(emergency_id)

    def put(self, emergency: Emergency) -> None:
        self._by_id[emergency.id] = emergency

    def remove(self, emergency_id: str) -> Emergency | None:
        return self._by_id.pop(emergency_id, None)

    def values(self) -> list[Emergency]:
        return list(self._by_id.values())

    def __contains__(self, emergency_id: object) -> bool:
        return emergency_id in self._by_id

    def __iter__(self) -> Iterator[Emergency]:
        return iter(self.values())

    def __len__(self) -> int:
        return len(self._by_id)
