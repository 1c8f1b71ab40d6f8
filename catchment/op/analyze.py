from catchment import autocli, read_stream, write_stream
from catchment import corridor, directness, hull
from catchment.op import of_kind, setting, track
from catchment.records import Analysis, RouteSet, Skipped
import logging

logger = logging.getLogger(__name__)


def area(lines, resolution, concavity, length_threshold):
	"""Concave hull around the corridors of routes, or None if it can't be built."""
	fp = corridor.footprint(lines, resolution)
	if fp is None:
		logger.warning('no route is long enough to make a corridor')
		return None

	try:
		return hull.footprint_hull(fp, resolution, concavity, length_threshold)
	except hull.HullError as e:
		logger.warning('concave hull failed: %s', e)
		return None


def analyze_routes(route_set, resolution, concavity, length_threshold, segments):
	lines = list(route_set.geometry.geoms)
	if len(lines) == 0:
		return Skipped(route_set.postcode, 'no routes')

	return Analysis(
		postcode=route_set.postcode,
		origin=route_set.origin,
		geometry=route_set.geometry,
		area=area(lines, resolution, concavity, length_threshold),
		directness=directness.analyze(lines, segments, route_set.distances),
		osm_id=route_set.osm_id)


@autocli
def main(route_sets: read_stream, *, resolution: float = None, concavity: float = None, length_threshold: float = None, segments: int = None) -> write_stream:
	"""Catchment area and route directness of each route set.

	Parameters
	----------
	route_sets : iterable of records.RouteSet
	resolution : float, optional
		Corridor width around routes and densify step, metres.
	concavity : float, optional
		0 gives convex hull, larger values follow the corridors more closely.
	length_threshold : float, optional
		Hull edges shorter than this (metres) are not refined.
	segments : int, optional
		Number of direction sectors.

	Options default to CONFIG['analysis'] values. If the area can't be built, the record still goes out, without `area`.
	"""
	resolution = setting(resolution, 'resolution')
	concavity = setting(concavity, 'concavity')
	length_threshold = setting(length_threshold, 'length_threshold')
	segments = setting(segments, 'segments')

	results = (analyze_routes(rs, resolution, concavity, length_threshold, segments) for rs in of_kind(route_sets, RouteSet))
	yield from track(results, 'analyze')
