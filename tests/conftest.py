"""Shared fixtures for the ventilation network tests."""
import pytest

from network_settings import NetworkSettings
from network_types import IdAllocator, Junction, Point, Segment, Shape
from ventilation_network import VentilationNetwork


@pytest.fixture
def settings():
    return NetworkSettings()


@pytest.fixture
def allocator():
    return IdAllocator(first=1000)


@pytest.fixture
def network():
    return VentilationNetwork()


@pytest.fixture
def make_segment():
    """Factory: make_segment(id, (x0, y0), (x1, y1), tr=100.0)."""
    def _make(segment_id, start, end, tr=100.0, **kwargs):
        return Segment(id=segment_id, start=Point.of(start), end=Point.of(end), tr=tr, **kwargs)
    return _make


@pytest.fixture
def make_shape():
    """Factory: make_shape(id, (cx, cy), width=40, height=40, rotation=0, air_value=None)."""
    def _make(shape_id, center, width=40.0, height=40.0, rotation=0.0, air_value=None):
        return Shape(
            id=shape_id, type="fan", center=Point.of(center),
            width=width, height=height, rotation=rotation, air_value=air_value,
        )
    return _make


@pytest.fixture
def make_junction():
    """Factory: make_junction(id, (x, y), *contributions)."""
    def _make(junction_id, position, *contributions):
        return Junction(junction_id, Point.of(position), list(contributions))
    return _make


@pytest.fixture
def three_way_network():
    """Two segments arriving by their end at (100, 100) and one leaving by its start."""
    net = VentilationNetwork()
    s1 = net.add_segment((0, 0), (100, 100), {"tr": 60})
    s2 = net.add_segment((200, 0), (100, 100), {"tr": 40})
    s3 = net.add_segment((100, 100), (100, 200), {"tr": 1})
    return net, s1[0], s2[0], s3[0]
