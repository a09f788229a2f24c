"""Shared test doubles."""

from freezewatch.alerts.schemas import AlertEvent
from freezewatch.notifications.schemas import ChannelTarget, DeliveryOutcome
from freezewatch.notifications.transports import ChannelTransport

T0 = 1_700_000_000_000  # epoch ms used as "now" throughout the tests


class RecordingDispatcher:
    """Collects dispatched events instead of delivering them."""

    def __init__(self) -> None:
        self.events: list[AlertEvent] = []

    async def dispatch(self, event: AlertEvent) -> None:
        self.events.append(event)

    @property
    def kinds(self) -> list[str]:
        return [e.kind for e in self.events]


class FakeTransport(ChannelTransport):
    """Returns queued outcomes (the last one repeats) and records every call."""

    def __init__(self, *outcomes: DeliveryOutcome, name: str = "fake") -> None:
        self._outcomes = list(outcomes) or [DeliveryOutcome.success()]
        self._name = name
        self.calls: list[tuple[dict, ChannelTarget]] = []

    @property
    def name(self) -> str:
        return self._name

    async def send(self, payload: dict, target: ChannelTarget) -> DeliveryOutcome:
        self.calls.append((payload, target))
        if len(self._outcomes) > 1:
            return self._outcomes.pop(0)
        return self._outcomes[0]


class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that returns immediately."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
