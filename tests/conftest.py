import pytest

from conservebot.core.numeric import QuietSource
from conservebot.domain.engine import DecisionEngine
from conservebot.domain.models import ArtifactType, DemoMode
from conservebot.drivers.simulator import ReadingSimulator
from conservebot.services.monitor import MonitorService
from conservebot.storage.memory_store import LiveStore


@pytest.fixture
def engine() -> DecisionEngine:
    return DecisionEngine()


@pytest.fixture
def quiet_sim() -> ReadingSimulator:
    return ReadingSimulator(ArtifactType.FOSSILS, DemoMode.NORMAL, source=QuietSource())


@pytest.fixture
def monitor() -> MonitorService:
    """Fresh METALLIC enclosure in remediation mode at the top of every offset range, no history."""
    sim = ReadingSimulator(ArtifactType.METALLIC, DemoMode.REMEDIATION, source=QuietSource(fraction=1.0))
    return MonitorService(simulator=sim, engine=DecisionEngine(), store=LiveStore())
