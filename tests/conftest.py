import math

import pytest

from hybrid_planner.maps.map_ingestor import MapIngestor
from hybrid_planner.messaging.topic_bus import TopicBus
from hybrid_planner.planning.orchestration.planning_orchestrator import PlanningOrchestrator
from hybrid_planner.planning.path_processing.path_exporter import PathExporter, SearchVisualization
from hybrid_planner.planning.path_processing.path_smoother import PathSmoother
from hybrid_planner.planning.session.planning_session import PoseValidator
from hybrid_planner.planning.state_search.configuration_space import ConfigurationSpace
from planner_doubles import LANE_TOPIC, START_TOPIC, RecordingVoronoi, StubSearchEngine


@pytest.fixture
def bus():
    return TopicBus()


@pytest.fixture
def scenario_a_chain():
    # goal-anchored order, as produced by tracing
    return [(8.0, 8.0, math.pi / 2), (1.0, 1.0, 0.0)]


@pytest.fixture
def build_orchestrator(bus):
    """Factory for an orchestrator wired to stubs on the shared bus."""
    def _build(search_engine=None, manual=True, transform_provider=None, config=None):
        configuration_space = ConfigurationSpace()
        voronoi = RecordingVoronoi()
        validator = PoseValidator(manual=manual, start_publisher=bus.advertise(START_TOPIC))
        ingestor = MapIngestor(configuration_space, voronoi, validator,
                               transform_provider=transform_provider, manual=manual)
        orchestrator = PlanningOrchestrator(
            search_engine if search_engine is not None else StubSearchEngine(),
            configuration_space, PathSmoother(), validator, ingestor,
            path_exporter=PathExporter(bus),
            visualization=SearchVisualization(),
            lane_publisher=bus.advertise(LANE_TOPIC, latch=True),
            config=config if config is not None else {'headings': 8})
        orchestrator.voronoi = voronoi
        return orchestrator
    return _build
