from catchment import autocli, read_stream, write_stream, utils
from catchment.directness import non_redundant
from catchment.op import of_kind, track
from catchment.records import Reach, RouteSet, Skipped
from catchment.routing import fetch_routes
from functools import partial
from shapely.geometry import MultiLineString


def route_reach(reach, router):
	"""Routes from the origin to every reachable point. Routes that are the beginning of another route are left out of the geometry."""
	routes = [r for _, r in fetch_routes(reach.origin, list(reach.geometry.geoms), router)]
	if len(routes) == 0:
		return Skipped(reach.postcode, 'no routes found')

	keep = non_redundant([r.signature for r in routes])
	return RouteSet(
		postcode=reach.postcode,
		origin=reach.origin,
		geometry=MultiLineString([routes[i].geometry for i in keep]),
		distances=tuple(r.distance for r in routes),
		durations=tuple(r.duration for r in routes),
		filtered_route_indexes=tuple(keep),
		osm_id=reach.osm_id)


@autocli
def main(reaches: read_stream, *, router='local', threads: int = 1) -> write_stream:
	"""Requests routes to reachable points and drops redundant ones.

	Parameters
	----------
	reaches : iterable of records.Reach
	router : str, default 'local'
		Name of router in config, or URL.
	threads : int, default 1
		Number of origins processed at once. Routes of one origin are always requested one by one.
	"""
	fn = partial(route_reach, router=router)
	yield from track(utils.bounded_map(fn, of_kind(reaches, Reach), threads), 'routes')
