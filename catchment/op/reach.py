from catchment import autocli, read_stream, write_stream, utils
from catchment.op import check_postcode, of_kind, setting, snap_threshold, track
from catchment.reachable import reachable
from catchment.records import Origin, Reach, Skipped
from catchment.routing import RoutingError, travel_times
from catchment.sampling import MODES, sample, travel_distance
from functools import partial
from shapely.geometry import MultiPoint
import logging

logger = logging.getLogger(__name__)


def reach_origin(origin, router, minutes, speed, resolution, snap=None, postcode_length=6, mode='hex', radials=36):
	"""Points reachable from one origin within the time budget.

	Returns
	-------
	records.Reach or records.Skipped
	"""
	skipped = check_postcode(origin, postcode_length)
	if skipped:
		return skipped

	samples, _ = sample(origin.geometry, travel_distance(minutes, speed), mode, resolution, radials)
	try:
		times = travel_times(origin.geometry, samples, router)
	except RoutingError as e:
		logger.error('%s: table request failed: %s', origin.postcode, e)
		return Skipped(origin.postcode, 'table request failed')

	points = reachable(samples, times, minutes, snap)
	if len(points) == 0:
		return Skipped(origin.postcode, 'no reachable points')

	logger.debug('%s: %d of %d samples reachable', origin.postcode, len(points), len(samples))
	return Reach(
		postcode=origin.postcode,
		origin=origin.geometry,
		geometry=MultiPoint(list(points.geometry)),
		durations=tuple(int(d) for d in points['duration']),
		osm_id=origin.osm_id)


@autocli
def main(origins: read_stream, *, router='local', minutes: float = None, speed: float = None, resolution: float = None, snap: float = None, postcode_length: int = None, mode='hex', radials: int = None, threads: int = 1) -> write_stream:
	"""Samples a grid around each origin and keeps the points that can be reached in `minutes`.

	Parameters
	----------
	origins : iterable of records.Origin
	router : str, default 'local'
		Name of router in config, or URL.
	minutes : float, optional
		Time budget.
	speed : float, optional
		Walking speed in km/h, defines how far the grid goes.
	resolution : float, optional
		Grid step (hexagon side) in metres.
	snap : float, optional
		Max distance in metres from a sample to the road the router snapped it to. By default it's the resolution, 0 disables the check.
	postcode_length : int, optional
		Origins with other postcode lengths are skipped.
	mode : str, default 'hex'
		Sample grid: `hex` (hexagon centres), `grid` (square lattice) or `radial` (`radials` points at the travel distance).
	radials : int, optional
		Number of radial points in `radial` mode.
	threads : int, default 1
		Number of origins processed at once.

	Options default to CONFIG['analysis'] values.

	Yields
	------
	records.Reach or records.Skipped
	"""
	if mode not in MODES:
		raise ValueError(f'mode must be one of {MODES}, got {mode!r}')

	resolution = setting(resolution, 'resolution')
	fn = partial(reach_origin,
		router=router,
		minutes=setting(minutes, 'minutes'),
		speed=setting(speed, 'speed'),
		resolution=resolution,
		snap=snap_threshold(snap, resolution),
		postcode_length=setting(postcode_length, 'postcode_length'),
		mode=mode,
		radials=setting(radials, 'radials'))

	yield from track(utils.bounded_map(fn, of_kind(origins, Origin), threads), 'reach')
