from catchment import corridor, utils
from shapely.errors import GEOSException
from shapely.geometry import LineString, MultiPolygon, Point, Polygon, box
from unittest import mock
import pytest

origin = Point(4.9, 52.37)


def _line(bearing, distance=500):
	return LineString([origin, utils.destination(origin, bearing, distance)])


def test_corridor():
	line = _line(90)
	parts = corridor.corridor(line, 50)
	assert len(parts) == 1
	poly = parts[0]
	assert poly.is_valid
	assert poly.covers(line)

	# width is about 2 * resolution
	side = utils.destination(origin, 0, 45)
	assert poly.contains(side)
	assert not poly.contains(utils.destination(origin, 0, 55))

	# too short or degenerate lines
	assert corridor.corridor(_line(90, 40), 50) == []
	assert corridor.corridor(LineString(), 50) == []
	assert corridor.corridor(None, 50) == []

	lines = [_line(0), _line(90, 40), _line(180)]
	assert len(corridor.corridors(lines, 50)) == 2


def test_remove_holes():
	ring = box(0, 0, 10, 10).difference(box(4, 4, 6, 6))
	assert len(ring.interiors) == 1
	assert len(corridor.remove_holes(ring).interiors) == 0
	assert corridor.remove_holes(ring).equals(box(0, 0, 10, 10))

	mp = MultiPolygon([ring, box(20, 20, 30, 30)])
	result = corridor.remove_holes(mp)
	assert all(len(p.interiors) == 0 for p in result.geoms)

	with pytest.raises(TypeError):
		corridor.remove_holes(LineString([(0, 0), (1, 1)]))


def test_union_all():
	polys = [box(0, 0, 2, 2), box(1, 1, 3, 3), box(10, 10, 11, 11)]
	result = corridor.union_all(polys)
	assert result.area == pytest.approx(4 + 4 - 1 + 1)
	assert corridor.union_all([]) is None

	# holes of added polygons are filled
	donut = box(0, 0, 10, 10).difference(box(4, 4, 6, 6))
	assert corridor.union_all([box(20, 0, 21, 1), donut]).area == pytest.approx(101)

	# failing union skips the polygon
	def flaky(a, b):
		if b.equals(polys[1]):
			raise GEOSException('TopologyException: side location conflict')
		return a.union(b)

	with mock.patch('catchment.corridor._union', side_effect=flaky):
		result = corridor.union_all(polys)

	assert result.area == pytest.approx(5)
	assert not result.intersects(Point(2.5, 2.5))


def test_footprint():
	lines = [_line(b) for b in range(0, 360, 45)]
	fp = corridor.footprint(lines, 50)
	assert isinstance(fp, Polygon)
	assert len(fp.interiors) == 0
	assert all(fp.covers(line) for line in lines)

	# a ring of routes around the origin leaves no hole
	square = [utils.destination(origin, b, 300) for b in (45, 135, 225, 315)]
	ring = [LineString([square[i], square[(i + 1) % 4]]) for i in range(4)]
	fp = corridor.footprint(ring, 50)
	assert fp.contains(origin)

	# far apart routes
	far = LineString([utils.destination(origin, 90, 5000), utils.destination(origin, 90, 5500)])
	fp = corridor.footprint([_line(270), far], 50)
	assert isinstance(fp, MultiPolygon)
	assert len(fp.geoms) == 2

	assert corridor.footprint([_line(0, 10)], 50) is None
	assert corridor.footprint([], 50) is None
