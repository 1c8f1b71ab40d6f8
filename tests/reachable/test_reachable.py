from catchment.reachable import reachable
from shapely.geometry import Point
import geopandas as gpd
import numpy as np

samples = gpd.GeoDataFrame({'cell': ['a', 'b', 'c', 'd', 'e', 'f']}, geometry=[
	Point(4.901, 52.371),
	Point(4.902, 52.372),
	Point(4.903, 52.373),
	Point(4.904, 52.374),
	Point(4.905, 52.375),
	Point(4.906, 52.376),
], crs=4326)

times = gpd.GeoDataFrame({
	'duration': [100.4, np.inf, 0, 2000, 300.6, np.nan],
	'snap_distance': [1, 1, 1, 1, 1, 1],
}, geometry=[
	Point(4.901, 52.3711),
	Point(4.902, 52.372),
	Point(4.903, 52.373),
	Point(4.904, 52.374),
	# snapped ~1 km away
	Point(4.905, 52.385),
	Point(4.906, 52.376),
], crs=4326)


def test_reachable():
	result = reachable(samples, times, 15)
	assert list(result['cell']) == ['e', 'a']
	assert list(result['duration']) == [301, 100]
	assert result.geometry.iloc[0].equals(Point(4.905, 52.385))

	# 100 m of snapping is allowed
	result = reachable(samples, times, 15, snap_threshold=100)
	assert list(result['cell']) == ['a']

	# shorter time budget
	result = reachable(samples, times, 2)
	assert list(result['cell']) == ['a']

	assert len(reachable(samples, times, 1)) == 0


def test_sorting():
	t = times.copy()
	t['duration'] = [300, 100, 300, 50, 200, 300]
	result = reachable(samples, t, 15)
	# ties keep the sample order
	assert list(result['cell']) == ['a', 'c', 'f', 'e', 'b', 'd']
