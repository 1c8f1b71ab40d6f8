from catchment import CONFIG, utils
from catchment.op import analyze, check_postcode, hexgrid, of_kind, prepare, radial, reach, routes, setting, snap_threshold, track
from catchment.records import Analysis, ConcaveHull, Hexagon, HullRecord, Origin, Reach, Route, RouteSet, ShowcaseRoutes, Skipped, WebRecord
from catchment.routing import RoutingError
from shapely.geometry import LineString, MultiLineString, MultiPoint, Point, Polygon
from unittest import mock
import geopandas as gpd
import numpy as np
import pytest

origin = Origin(postcode='1011AB', geometry=Point(4.9, 52.37), osm_id=7)


def _times(durations=None):
	"""Fake table request: every sample is snapped to itself."""
	def travel_times(origin, samples, router):
		count = len(samples)
		d = np.full(count, 60.) if durations is None else durations(count)
		return gpd.GeoDataFrame({'duration': d}, geometry=samples.geometry, index=samples.index, crs=4326)
	return travel_times


def _straight_routes(origin, destinations, router):
	result = []
	for i, dest in enumerate(destinations):
		line = LineString([origin, dest])
		length = utils.geodesic_length(line)
		result.append((i, Route(geometry=line, distance=length, duration=length / 1.4, nodes=(1, 2 + i))))
	return result


def test_settings():
	assert setting(None, 'minutes') == CONFIG['analysis']['minutes']
	assert setting(10, 'minutes') == 10

	with mock.patch.dict(CONFIG['analysis'], {'snap_threshold': None}):
		assert snap_threshold(None, 100) == 100
		assert snap_threshold(0, 100) is None
		assert snap_threshold(30, 100) == 30

	with mock.patch.dict(CONFIG['analysis'], {'snap_threshold': 0}):
		assert snap_threshold(None, 100) is None


def test_check_postcode():
	assert check_postcode(origin, 6) is None
	assert isinstance(check_postcode(origin, 4), Skipped)
	assert isinstance(check_postcode(Origin(postcode=None, geometry=Point(4.9, 52.37)), 4), Skipped)


def test_of_kind_track():
	hexagon = Hexagon(cell='h0:0', geometry=Polygon([(4.9, 52.37), (4.91, 52.37), (4.91, 52.38)]))
	assert list(of_kind([origin, hexagon, origin], Origin)) == [origin, origin]

	results = [origin, Skipped('1011', 'nothing'), origin]
	with mock.patch('catchment.op.Progress.report') as mr:
		assert list(track(results, 'test')) == results
	mr.assert_called_once()


def test_reach():
	with mock.patch('catchment.op.reach.travel_times', side_effect=_times()) as mt:
		result = reach.reach_origin(origin, 'local', minutes=5, speed=5, resolution=100, snap=100, postcode_length=6)

	mt.assert_called_once()
	assert isinstance(result, Reach)
	assert result.postcode == '1011AB'
	assert result.osm_id == 7
	assert result.origin == origin.geometry
	samples = mt.call_args[0][1]
	assert len(result.geometry.geoms) == len(samples)
	assert set(result.durations) == {60}

	# half of points are unreachable
	odd = lambda count: np.where(np.arange(count) % 2 == 0, 60., np.inf)
	with mock.patch('catchment.op.reach.travel_times', side_effect=_times(odd)):
		result = reach.reach_origin(origin, 'local', minutes=5, speed=5, resolution=100)

	assert len(result.geometry.geoms) == (len(samples) + 1) // 2

	# too slow
	with mock.patch('catchment.op.reach.travel_times', side_effect=_times(lambda count: np.full(count, 600.))):
		result = reach.reach_origin(origin, 'local', minutes=5, speed=5, resolution=100)
	assert isinstance(result, Skipped)


def test_reach_skipped():
	with mock.patch('catchment.op.reach.travel_times') as mt:
		result = reach.reach_origin(origin, 'local', minutes=5, speed=5, resolution=100, postcode_length=4)

	assert isinstance(result, Skipped)
	mt.assert_not_called()

	with mock.patch('catchment.op.reach.travel_times', side_effect=RoutingError('server is down')):
		result = reach.reach_origin(origin, 'local', minutes=5, speed=5, resolution=100)

	assert isinstance(result, Skipped)
	assert 'table' in result.reason


def test_reach_main():
	origins = [origin, Origin(postcode='1011', geometry=Point(4.91, 52.37)), origin]
	with mock.patch('catchment.op.reach.travel_times', side_effect=_times()):
		result = list(reach.main(origins, minutes=5, speed=5, resolution=200, postcode_length=6, threads=2))

	assert len(result) == 3
	assert [type(r) for r in result] == [Reach, Skipped, Reach]


def test_routes():
	reach_record = Reach(postcode='1011AB', origin=Point(4.9, 52.37), geometry=MultiPoint([(4.9, 52.375), (4.905, 52.37), (4.9, 52.365)]), durations=(300, 250, 200), osm_id=7)
	fetched = [
		(0, Route(LineString([(4.9, 52.37), (4.9, 52.375)]), 560, 400, (1, 2, 3))),
		(1, Route(LineString([(4.9, 52.37), (4.905, 52.37)]), 340, 250, (1, 2))),
		(2, Route(LineString([(4.9, 52.37), (4.9, 52.365)]), 560, 400, (1, 5))),
	]
	with mock.patch('catchment.op.routes.fetch_routes', return_value=fetched) as mf:
		result = routes.route_reach(reach_record, 'local')

	mf.assert_called_once_with(Point(4.9, 52.37), list(reach_record.geometry.geoms), 'local')
	assert isinstance(result, RouteSet)
	# route 1 is the beginning of route 0
	assert result.filtered_route_indexes == (0, 2)
	assert len(result.geometry.geoms) == 2
	assert result.distances == (560, 340, 560)
	assert result.durations == (400, 250, 400)

	with mock.patch('catchment.op.routes.fetch_routes', return_value=[]):
		assert isinstance(routes.route_reach(reach_record, 'local'), Skipped)


def test_analyze():
	lines = [LineString([(4.9, 52.37), (4.9, 52.375), (4.905, 52.375)]), LineString([(4.9, 52.37), (4.89, 52.37)])]
	route_set = RouteSet(postcode='1011AB', origin=Point(4.9, 52.37), geometry=MultiLineString(lines), distances=(900, 680), durations=(650, 490), filtered_route_indexes=(0, 1), osm_id=7)

	with mock.patch('catchment.op.analyze.corridor.footprint', return_value=None):
		result = analyze.analyze_routes(route_set, resolution=100, concavity=.5, length_threshold=0, segments=8)

	assert isinstance(result, Analysis)
	# the record goes out without area
	assert result.area is None
	assert result.osm_id == 7
	assert len(result.directness.max_distance_per_segment) == 8
	assert result.directness.stats.distance_ratio_mean > 1
	assert result.directness.stats.distance_mean == pytest.approx(790)

	area = ConcaveHull(geometry=Polygon([(4.89, 52.37), (4.9, 52.376), (4.906, 52.375)]), area=1000, circumference=200, area_circumference_ratio=5)
	with mock.patch('catchment.op.analyze.corridor.footprint', return_value=mock.Mock()), mock.patch('catchment.op.analyze.hull.footprint_hull', return_value=area):
		result = list(analyze.main([route_set, origin], resolution=100, concavity=.5, length_threshold=0, segments=4))

	assert len(result) == 1
	assert result[0].area == area
	assert len(result[0].directness.max_distance_per_segment) == 4

	empty = RouteSet(postcode='1011AB', origin=Point(4.9, 52.37), geometry=MultiLineString([]))
	assert isinstance(analyze.analyze_routes(empty, 100, .5, 0, 8), Skipped)


def test_radial():
	with mock.patch('catchment.op.radial.travel_times', side_effect=_times()), mock.patch('catchment.op.radial.fetch_routes', side_effect=_straight_routes) as mf:
		result = radial.radial_origin(origin, 'local', minutes=5, speed=5, resolution=100, radials=8, concavity=0, postcode_length=6)

	assert [type(r) for r in result] == [Origin, HullRecord, ShowcaseRoutes]
	assert result[0] == origin

	hull_record = result[1]
	assert hull_record.geometry.is_valid
	assert hull_record.area > 0
	assert hull_record.area_circumference_ratio == pytest.approx(hull_record.area / hull_record.circumference, rel=.01)

	showcase = result[2]
	destinations = mf.call_args[0][1]
	assert 0 < len(destinations) <= 8
	assert len(showcase.geometry.geoms) == len(destinations)
	# straight routes
	assert showcase.distance_ratios == pytest.approx([1] * len(destinations))
	assert showcase.mean_distance_ratio == pytest.approx(1)

	with mock.patch('catchment.op.radial.travel_times') as mt:
		assert isinstance(radial.radial_origin(origin, 'local', 5, 5, 100, 8, postcode_length=4), Skipped)
	mt.assert_not_called()


def test_radial_main():
	with mock.patch('catchment.op.radial.travel_times', side_effect=_times()), mock.patch('catchment.op.radial.fetch_routes', side_effect=_straight_routes):
		result = list(radial.main([origin], minutes=5, speed=5, resolution=100, radials=8, concavity=0, postcode_length=6))

	assert [r.kind for r in result] == ['origin', 'concave-hull', 'showcase-routes']


def test_prepare():
	# ~600 m to the north
	line = LineString([(4.9, 52.37), (4.9, 52.3754)])
	point_like = LineString([(4.9, 52.37), (4.9, 52.37)])
	area = ConcaveHull(geometry=Polygon([(4.89, 52.37), (4.9, 52.376), (4.906, 52.375)]), area=1000, circumference=200)
	analysis = Analysis(postcode='1011AB', origin=Point(4.9, 52.37), geometry=MultiLineString([line, point_like]), area=area, osm_id=7)

	result = prepare.prepare_analysis(analysis, chunk=250)
	assert isinstance(result, WebRecord)
	assert result.chunk_indexes == (0, 1, 2)
	assert len(result.geometry.geoms) == 3
	assert sum(utils.geodesic_length(l) for l in result.geometry.geoms) == pytest.approx(utils.geodesic_length(line), abs=.01)
	assert isinstance(result.area, Polygon)
	assert result.osm_id == 7

	no_area = Analysis(postcode='1011AB', origin=Point(4.9, 52.37), geometry=MultiLineString([line]))
	result = list(prepare.main([no_area, origin], chunk=1000))
	assert len(result) == 1
	assert result[0].area is None
	assert result[0].chunk_indexes == (0,)


def test_hexgrid():
	assert hexgrid.parse_bbox('4.89,52.36,4.91,52.38') == (4.89, 52.36, 4.91, 52.38)
	assert hexgrid.parse_bbox([1, 2, 3, 4]) == (1, 2, 3, 4)

	for bad in ('1,2,3', '1,2,a,4', '3,2,1,4'):
		with pytest.raises(ValueError):
			hexgrid.parse_bbox(bad)

	cells = list(hexgrid.main('4.89,52.36,4.91,52.38', size=500))
	assert len(cells) > 0
	assert all(isinstance(c, Hexagon) for c in cells)
	assert len({c.cell for c in cells}) == len(cells)


def test_reach_modes():
	with mock.patch('catchment.op.reach.travel_times', side_effect=_times()) as mt:
		result = reach.reach_origin(origin, 'local', minutes=5, speed=5, resolution=100, mode='grid')

	assert isinstance(result, Reach)
	assert mt.call_args[0][1]['cell'].str.startswith('g').all()

	with mock.patch('catchment.op.reach.travel_times', side_effect=_times()) as mt:
		result = list(reach.main([origin], minutes=5, speed=5, postcode_length=6, mode='radial', radials=8))

	assert list(mt.call_args[0][1]['cell']) == [f'r{i}' for i in range(8)]
	assert len(result[0].geometry.geoms) == 8

	with pytest.raises(ValueError):
		list(reach.main([origin], mode='spiral'))


def _stream(items):
	reader = mock.MagicMock()
	reader.__enter__.return_value = iter(items)
	return reader


def test_origins():
	from catchment.op import origins

	with mock.patch('catchment.op.origins.read_stream', return_value=_stream([origin])) as mr, mock.patch('catchment.op.origins.track', wraps=track) as mt:
		result = list(origins.main('postgresql://localhost/osm', postcode_length=6))

	assert result == [origin]
	mr.assert_called_once_with('postgresql://localhost/osm/origins', pbar=False, postcode_length=6, boundary=None)
	assert mt.call_args[0][1] == 'postcodes'

	inside = Hexagon(cell='h0:0', geometry=Polygon([(4.89, 52.36), (4.91, 52.36), (4.91, 52.38)]))
	outside = Hexagon(cell='h9:9', geometry=Polygon([(5.89, 52.36), (5.91, 52.36), (5.91, 52.38)]))
	boundary = Polygon([(4.8, 52.3), (5, 52.3), (5, 52.4), (4.8, 52.4)])
	streams = {'hexagons.ndjson': _stream([inside, origin, outside]), 'postgresql://localhost/osm/origins': _stream([origin])}
	with mock.patch('catchment.op.origins.read_stream', side_effect=lambda path, **kw: streams[path]) as mr, mock.patch('catchment.op.origins.track', wraps=track) as mt:
		result = list(origins.main('postgresql://localhost/osm', intersects=boundary, hexagons='hexagons.ndjson'))

	assert result == [origin]
	assert mt.call_args[0][1] == 'hexagons'
	# only hexagons inside the boundary are passed to the database reader
	cells = mr.call_args_list[1][1]['hexagons']
	assert list(cells) == [inside]

	with pytest.raises(ValueError):
		list(origins.main('origins.ndjson'))
