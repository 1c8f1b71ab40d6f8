"""OSRM adapter: travel time tables from one origin and single routes with node annotations.

Every request goes through `utils.get_retry` and is followed by a fixed sleep (`CONFIG['requests']['delay']`), because a local OSRM instance serves one request at a time.
"""

from catchment import CONFIG, utils
from catchment.records import Route
from time import sleep
import geopandas as gpd
import logging
import numpy as np
import polyline
import re
import requests
import urllib.parse

logger = logging.getLogger(__name__)


class RoutingError(RuntimeError):
	"""Router could not be reached or responded with an error."""
	pass


def router_url(router):
	"""Resolves router name from CONFIG['routers'] or checks that it's a URL."""
	if router not in CONFIG['routers'] and not re.match(r'^https?\://.*', str(router)):
		raise ValueError(f'router must be a key in catchment config routers section, or a URL. got: \'{router}\'')
	return CONFIG['routers'].get(router, router).rstrip('/')


def _request_settings(delay=None, retries=None, timeout=None, delay_key='delay'):
	settings = CONFIG['requests']
	return (
		settings[delay_key] if delay is None else delay,
		settings['retries'] if retries is None else retries,
		settings['timeout'] if timeout is None else timeout)


def _get_json(url, params, retries, timeout):
	"""Requests the URL and returns parsed OSRM response. Any failure is raised as RoutingError."""
	try:
		resp = utils.get_retry(url, params, retries, timeout)
	except requests.exceptions.RequestException as e:
		raise RoutingError(f'could not connect to router: {e}') from e

	if resp.status_code != 200:
		raise RoutingError(f'OSRM server responded with {resp.status_code} code. Content: {resp.content[:200]}')

	try:
		data = resp.json()
	except ValueError as e:
		raise RoutingError(f'OSRM response is not valid JSON: {e}') from e

	if data.get('code') != 'Ok':
		raise RoutingError(f'OSRM server responded with error: {data.get("code")} {data.get("message", "")}')
	return data


def travel_times(origin, destinations, router='local', profile=None, delay=None, retries=None, timeout=None):
	"""Makes one table request from origin to all destinations.

	Parameters
	----------
	origin : Point
		Start of all trips (EPSG:4326).
	destinations : gpd.GeoDataFrame or gpd.GeoSeries of Points
		Sample points.
	router : str
		Name of router in CONFIG['routers'] or URL.
	profile : str, optional
		OSRM profile name in the URL, CONFIG['profile'] by default.
	delay : float, optional
		Seconds to sleep after the request, CONFIG['requests']['delay'] by default.
	retries, timeout : optional
		Passed to `utils.get_retry`.

	Returns
	-------
	gpd.GeoDataFrame
		Indexed like destinations: `duration` (seconds, inf if unreachable), `snap_distance` (metres, reported by OSRM), `geometry` (snapped point).

	Raises
	------
	RoutingError
	"""
	host = router_url(router)
	profile = profile or CONFIG['profile']
	delay, retries, timeout = _request_settings(delay, retries, timeout)

	points = list(destinations.geometry if isinstance(destinations, gpd.GeoDataFrame) else destinations)
	count = len(points)
	if count == 0:
		return gpd.GeoDataFrame({'duration': [], 'snap_distance': []}, geometry=[], crs=4326)

	encoded = polyline.encode([(p.y, p.x) for p in [origin] + points])
	params = {
		'sources': '0',
		'destinations': ';'.join(map(str, range(1, count + 1))),
		'generate_hints': 'false',
	}
	# if we pass url and params separately to requests.get, it will escape semicolons
	encoded_params = urllib.parse.urlencode(params, safe=';')
	url = f'{host}/table/v1/{profile}/polyline({urllib.parse.quote(encoded, safe="")})?{encoded_params}'

	try:
		data = _get_json(url, {}, retries, timeout)
	finally:
		sleep(delay)

	try:
		durations = data['durations'][0]
		snapped = data['destinations']
	except (KeyError, IndexError, TypeError) as e:
		raise RoutingError(f'OSRM table response is missing data: {e}') from e

	if len(durations) != count or len(snapped) != count:
		raise RoutingError(f'OSRM table returned {len(durations)} durations for {count} destinations')

	# plain lists of points get a new index
	index = destinations.index if isinstance(destinations, (gpd.GeoDataFrame, gpd.GeoSeries)) else None
	return gpd.GeoDataFrame({
		'duration': np.array([np.inf if d is None else d for d in durations], dtype=float),
		'snap_distance': [s.get('distance') for s in snapped],
	}, geometry=gpd.points_from_xy([s['location'][0] for s in snapped], [s['location'][1] for s in snapped]), index=index, crs=4326)


def merge_nodes(legs):
	"""Joins node annotations of route legs into one list."""
	nds = []
	for leg in legs:
		n = leg.get('annotation', {}).get('nodes', [])
		# annotations always have start-end edges fully,
		# even when waypoint projects on a node (a corner), the edge before or after is repeated in adjacent legs
		nds.extend(n[2:] if n[:2] == nds[-2:] else n)
	return nds


def route(origin, destination, router='local', profile=None, delay=None, retries=None, timeout=None):
	"""Requests a single route with full geometry and node ids.

	Returns
	-------
	records.Route

	Raises
	------
	RoutingError
		If the router failed or found no route.
	"""
	host = router_url(router)
	profile = profile or CONFIG['profile']
	delay, retries, timeout = _request_settings(delay, retries, timeout, 'route_delay')

	coordinates = ';'.join(f'{p.x},{p.y}' for p in (origin, destination))
	url = f'{host}/route/v1/{profile}/{coordinates}'
	params = {
		'overview': 'full',
		'alternatives': 'false',
		'steps': 'false',
		'geometries': 'polyline6',
		'annotations': 'nodes',
		'generate_hints': 'false',
	}

	try:
		data = _get_json(url, params, retries, timeout)
	finally:
		sleep(delay)

	routes = data.get('routes') or []
	if len(routes) == 0:
		raise RoutingError(f'no route from {origin} to {destination}')

	r = routes[0]
	return Route(
		geometry=utils.decode_poly(r['geometry'], 6),
		distance=r['distance'],
		duration=r['duration'],
		nodes=tuple(merge_nodes(r.get('legs', []))))


def fetch_routes(origin, destinations, router='local', **kwargs):
	"""Requests routes one by one from origin to each destination point. Failed routes are logged and skipped.

	Returns
	-------
	list of (index, records.Route)
		Index is the position of destination in the input.
	"""
	result = []
	for i, dest in enumerate(destinations):
		try:
			result.append((i, route(origin, dest, router, **kwargs)))
		except RoutingError as e:
			logger.warning('route %s -> %s skipped: %s', origin, dest, e)
	return result
