from catchment import directness, utils
from catchment.records import Directness
from shapely.geometry import LineString, Point
import numpy as np
import pytest

origin = Point(4.9, 52.37)


def test_segment_index():
	assert directness.segment_index(0) == 0
	assert directness.segment_index(359) == 0
	assert directness.segment_index(22) == 0
	assert directness.segment_index(23) == 1
	assert directness.segment_index(180) == 4
	assert directness.segment_index(337.6) == 0
	assert directness.segment_index(90, 4) == 1
	assert directness.segment_index(359.9, 36) == 0


def test_radial_routes():
	"""Straight routes in 8 directions: ratio 1, each in its own sector."""
	lines = [LineString([origin, utils.destination(origin, 45 * i, 500 + 100 * i)]) for i in range(8)]
	table = directness.measure_routes(lines)

	assert table['ratio'].to_numpy() == pytest.approx(np.ones(8), abs=1e-6)
	assert sorted(table['segment']) == list(range(8))

	result = directness.analyze(lines, 8, distances=[500] * 8)
	assert isinstance(result, Directness)
	assert result.max_distance_per_segment == tuple(500 + 100 * i for i in range(8))
	assert result.stats.distance_ratio_mean == pytest.approx(1)
	assert result.stats.distance_ratio_std == pytest.approx(0, abs=1e-6)
	assert result.stats.distance_ratio_weighted_mean == pytest.approx(1)
	assert result.stats.length_mean == pytest.approx(850)
	assert result.stats.distance_mean == 500
	assert result.stats.distance_std == 0


def test_detour():
	corner = utils.destination(origin, 90, 300)
	end = utils.destination(corner, 0, 400)
	line = LineString([origin, corner, end])
	table = directness.measure_routes([line])

	assert table['length'][0] == pytest.approx(700, abs=.1)
	assert table['distance'][0] == pytest.approx(500, abs=1)
	assert table['ratio'][0] == pytest.approx(1.4, abs=.01)
	# bearing ~37 degrees
	assert table['segment'][0] == 1

	# route back to the origin has no ratio
	loop = LineString([origin, corner, origin])
	table = directness.measure_routes([line, loop])
	assert np.isnan(table['ratio'][1])
	stats = directness.directness_stats(table)
	assert stats.distance_ratio_mean == pytest.approx(1.4, abs=.01)
	assert stats.distance_ratio_weighted_mean == pytest.approx(1.4, abs=.01)
	assert stats.distance_mean is None


def test_empty_sectors():
	lines = [LineString([origin, utils.destination(origin, 90, 300)])]
	result = directness.analyze(lines, 4)
	assert result.max_distance_per_segment == (0, 300, 0, 0)

	table = directness.measure_routes([])
	assert directness.max_distance_per_segment(table) == (0,) * 8
	assert directness.directness_stats(table).distance_ratio_mean is None


def test_iqr():
	lines = []
	for north in (0, 100, 200, 400, 800):
		corner = utils.destination(origin, 90, 300)
		lines.append(LineString([origin, corner, utils.destination(corner, 0, north)]) if north else LineString([origin, corner]))

	stats = directness.directness_stats(directness.measure_routes(lines))
	assert stats.distance_ratio_iqr is not None
	# quartiles of 1, 1.265, 1.287, 1.387, 1.4
	assert stats.distance_ratio_iqr == pytest.approx(1.38675 - 1.26491, abs=.005)
	assert stats.distance_ratio_std > 0


def test_non_redundant():
	assert directness.non_redundant([(1, 2, 3), (1, 2, 3, 4, 5)]) == [1]
	assert directness.non_redundant([(1, 2, 3, 4, 5), (1, 2, 3)]) == [0]
	# not a prefix
	assert directness.non_redundant([(1, 2, 3), (2, 3, 4)]) == [0, 1]
	assert directness.non_redundant([(1, 2), (1, 3)]) == [0, 1]
	# same routes are kept both
	assert directness.non_redundant([(1, 2, 3), (1, 2, 3)]) == [0, 1]
	# routes without nodes are kept
	assert directness.non_redundant([(), (1, 2), None]) == [0, 1, 2]
	# prefix of a prefix
	assert directness.non_redundant([(1,), (1, 2), (1, 2, 3), (1, 5)]) == [2, 3]
	assert directness.non_redundant([]) == []


def test_non_redundant_idempotent():
	sigs = [(1, 2, 3), (1, 2, 3, 4, 5), (1, 7), (1, 7, 8), (9,), (1, 2, 3, 4)]
	keep = directness.non_redundant(sigs)
	assert keep == [1, 3, 4]
	kept = [sigs[i] for i in keep]
	assert directness.non_redundant(kept) == list(range(len(kept)))
