from catchment import autocli, read_stream, write_stream, utils
from catchment.boundary import boundary_points
from catchment.directness import measure_routes
from catchment.hull import HullError, build_hull
from catchment.op import check_postcode, of_kind, setting, snap_threshold, track
from catchment.reachable import reachable
from catchment.records import HullRecord, Origin, ShowcaseRoutes, Skipped
from catchment.routing import RoutingError, fetch_routes, travel_times
from catchment.sampling import point_grid, radial_grid, travel_distance
from functools import partial
from shapely.geometry import MultiLineString
import logging

logger = logging.getLogger(__name__)


def radial_origin(origin, router, minutes, speed, resolution, radials, concavity=.5, length_threshold=0, snap=None, postcode_length=4):
	"""Catchment area of an origin sampled inside a radial mask, and showcase routes to its boundary in each radial direction.

	Returns
	-------
	list of records (Origin, HullRecord, ShowcaseRoutes), or records.Skipped
	"""
	skipped = check_postcode(origin, postcode_length)
	if skipped:
		return skipped

	ends, mask = radial_grid(origin.geometry, travel_distance(minutes, speed), radials, resolution)
	samples, _ = point_grid(origin.geometry, 0, resolution, mask)
	try:
		times = travel_times(origin.geometry, samples, router)
	except RoutingError as e:
		logger.error('%s: table request failed: %s', origin.postcode, e)
		return Skipped(origin.postcode, 'table request failed')

	points = reachable(samples, times, minutes, snap)
	try:
		area = build_hull(points.geometry, concavity, length_threshold)
	except HullError as e:
		return Skipped(origin.postcode, f'no catchment area: {e}')

	crossings = boundary_points(origin.geometry, ends.geometry, area.geometry)
	if len(crossings) == 0:
		logger.warning('%s: no radial crosses the catchment area boundary', origin.postcode)

	routes = [r for _, r in fetch_routes(origin.geometry, list(crossings.geometry), router)]
	ratios = measure_routes([r.geometry for r in routes])['ratio'].round(6)
	mean_ratio = float(ratios.mean()) if ratios.notna().any() else None

	return [
		origin,
		HullRecord(
			postcode=origin.postcode,
			origin=origin.geometry,
			geometry=area.geometry,
			area=area.area,
			circumference=area.circumference,
			area_circumference_ratio=area.area_circumference_ratio,
			osm_id=origin.osm_id),
		ShowcaseRoutes(
			postcode=origin.postcode,
			origin=origin.geometry,
			geometry=MultiLineString([r.geometry for r in routes]),
			distances=tuple(r.distance for r in routes),
			durations=tuple(r.duration for r in routes),
			distance_ratios=tuple(ratios.tolist()),
			mean_distance_ratio=mean_ratio,
			osm_id=origin.osm_id),
	]


@autocli
def main(origins: read_stream, *, router='local', minutes: float = None, speed: float = None, resolution: float = None, radials: int = None, concavity: float = None, length_threshold: float = None, snap: float = None, postcode_length: int = None, threads: int = 1) -> write_stream:
	"""Radial catchment areas: square grid inside the polygon of `radials` points at the travel distance, concave hull of reachable points, and routes to the hull boundary along each radial.

	For each origin yields 3 records: the origin itself, `concave-hull` and `showcase-routes`.

	Options default to CONFIG['analysis'] values, see `reach` and `analyze` commands.
	"""
	resolution = setting(resolution, 'resolution')
	fn = partial(radial_origin,
		router=router,
		minutes=setting(minutes, 'minutes'),
		speed=setting(speed, 'speed'),
		resolution=resolution,
		radials=setting(radials, 'radials'),
		concavity=setting(concavity, 'concavity'),
		length_threshold=setting(length_threshold, 'length_threshold'),
		snap=snap_threshold(snap, resolution),
		postcode_length=setting(postcode_length, 'postcode_length'))

	for result in track(utils.bounded_map(fn, of_kind(origins, Origin), threads), 'radial'):
		if isinstance(result, Skipped):
			yield result
		else:
			yield from result
