from pyproj import Geod
from shapely.geometry import LineString, Point
import geopandas as gpd
import logging
import numpy as np

logger = logging.getLogger(__name__)

# all distances and areas on the ellipsoid are measured with this object
GEOD = Geod(ellps='WGS84')

COORD_PRECISION = 6


def transform(obj, crs_from, crs_to):
	"""Transforms obj (a shapely geometry) between CRS."""
	from pyproj import Transformer
	from shapely.ops import transform as transform_
	transformer = Transformer.from_crs(crs_from, crs_to, always_xy=True)
	return transform_(transformer.transform, obj)


def decode_poly(encoded_line, precision=5):
	"""Decodes Google polyline format and reverses lat/lon to lon/lat coords. Used for routing with OSRM (`geometries=polyline6` needs precision=6)."""
	import polyline
	return LineString([(i[1], i[0]) for i in polyline.decode(encoded_line, precision)])


def coslat(geom):
	"""Calculates latittude cosine coefficient for geoseries or a single geometry. If geometry type is not point, centroid is taken.

	If geom is a single geometry, we assume its CRS is 4326."""
	from shapely.geometry.base import BaseGeometry
	if not isinstance(geom, (gpd.GeoSeries, BaseGeometry)):
		raise TypeError(f'geom must be GeoSeries or BaseGeometry, got {geom.__class__} instead.')

	if isinstance(geom, BaseGeometry):
		v = transform(transform(geom, 4326, 3857).centroid, 3857, 4326)
	else:
		v = geom.to_crs(3857).centroid.to_crs(4326)

	return np.cos(np.radians(v.y))


def geodesic_length(geom):
	"""Length of a (multi)linestring or polygon boundary in metres on WGS84 ellipsoid."""
	return GEOD.geometry_length(geom)


def geodesic_distance(point1, point2):
	"""Distance in metres between two lon/lat points."""
	return GEOD.inv(point1.x, point1.y, point2.x, point2.y)[2]


def bearing(point1, point2):
	"""Compass bearing from point1 to point2, degrees in [0, 360)."""
	az = GEOD.inv(point1.x, point1.y, point2.x, point2.y)[0]
	return az % 360


def destination(origin, bearing, distance):
	"""Point at `distance` metres from `origin` along `bearing` (degrees)."""
	lon, lat, _ = GEOD.fwd(origin.x, origin.y, bearing, distance)
	return Point(lon, lat)


def chunk_line(line, length):
	"""Splits a LineString into pieces `length` metres long (on the ellipsoid). The last piece may be shorter.

	Parameters
	----------
	line : LineString
		In lon/lat (EPSG:4326).
	length : float
		Length of chunks in metres.

	Returns
	-------
	list of LineString
	"""
	from shapely.ops import substring

	if length <= 0:
		raise ValueError(f'chunk length must be positive, got {length}')

	coords = np.asarray(line.coords)[:, :2]
	_, _, seg_lengths = GEOD.inv(coords[:-1, 0], coords[:-1, 1], coords[1:, 0], coords[1:, 1])
	seg_lengths = np.atleast_1d(seg_lengths)
	cum = np.concatenate([[0], np.cumsum(seg_lengths)])
	total = cum[-1]

	# pieces shorter than a millimetre are float error
	marks = np.arange(length, total, length)
	marks = marks[marks < total - 1e-3]
	if len(marks) == 0:
		return [line]

	# geodesic marks => distances along the line in degrees, linear within each segment
	planar_lengths = np.hypot(*np.diff(coords, axis=0).T)
	planar_cum = np.concatenate([[0], np.cumsum(planar_lengths)])
	seg = np.clip(np.searchsorted(cum, marks, side='right') - 1, 0, len(seg_lengths) - 1)
	positions = planar_cum[seg] + (marks - cum[seg]) / seg_lengths[seg] * planar_lengths[seg]

	bounds = [0] + list(positions) + [planar_cum[-1]]
	return [substring(line, start, end) for start, end in zip(bounds[:-1], bounds[1:])]


def get_retry(url, params, retries=10, timeout=None):
	"""Requests any URL with GET params, with 10 retries.

	Parameters
	----------
	url : string
	params : dict
		GET parameters as dictionary. Values may be lists.
	retries : int
	timeout : float, optional
		Number of seconds to wait, may be less than 1.

	Returns
	-------
	requests.Response object
	"""
	from time import sleep
	import requests

	for try_num in range(retries + 1):
		sleep(try_num)
		try:
			return requests.get(url, params=params, timeout=timeout)
		except (requests.exceptions.ConnectionError, requests.exceptions.ConnectTimeout):
			logger.debug('could not connect to %s', url)
			if try_num >= retries:
				raise

			logger.debug('retrying %s', try_num)


def bounded_map(func, iterable, threads=1):
	"""Like `map`, but runs `func` in a thread pool with at most `threads` calls in flight.

	Items are pulled from `iterable` only when a slot is free, so a slow consumer holds back the source. Results come in the input order.
	"""
	if threads is None or threads <= 1:
		yield from map(func, iterable)
		return

	from collections import deque
	from concurrent.futures import ThreadPoolExecutor

	with ThreadPoolExecutor(max_workers=threads) as tpe:
		pending = deque()
		for item in iterable:
			if len(pending) >= threads:
				yield pending.popleft().result()
			pending.append(tpe.submit(func, item))

		while pending:
			yield pending.popleft().result()
