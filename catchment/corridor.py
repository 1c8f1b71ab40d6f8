"""Corridors around routes and their union (the area covered by the routes)."""

from catchment import utils
from shapely.errors import GEOSException
from shapely.geometry import MultiPolygon, Polygon
from shapely.validation import make_valid
import logging

logger = logging.getLogger(__name__)

# metres
SIMPLIFY_TOLERANCE = 10


def _polygon_parts(geom):
	if isinstance(geom, Polygon):
		return [] if geom.is_empty else [geom]
	if hasattr(geom, 'geoms'):
		return [p for g in geom.geoms for p in _polygon_parts(g)]
	return []


def corridor(line, resolution, simplify_tolerance=SIMPLIFY_TOLERANCE):
	"""Buffer of `resolution` metres around a lon/lat LineString, as a list of simple polygons.

	Returns an empty list if the line is too short to be buffered (fewer than 2 coordinates or not longer than `resolution`).
	"""
	if line is None or line.is_empty or len(line.coords) < 2:
		return []

	if utils.geodesic_length(line) <= resolution:
		return []

	k = utils.coslat(line)
	local = utils.transform(line, 4326, 3857)
	local = local.simplify(simplify_tolerance / k)
	buf = utils.transform(local.buffer(resolution / k), 3857, 4326)
	if not buf.is_valid:
		buf = make_valid(buf)
	return _polygon_parts(buf)


def corridors(lines, resolution, simplify_tolerance=SIMPLIFY_TOLERANCE):
	"""Corridor polygons of all lines, in the order of the lines."""
	return [p for line in lines for p in corridor(line, resolution, simplify_tolerance)]


def remove_holes(geom):
	"""Polygon or MultiPolygon without interior rings."""
	if isinstance(geom, Polygon):
		return Polygon(geom.exterior)
	if isinstance(geom, MultiPolygon):
		return MultiPolygon([Polygon(p.exterior) for p in geom.geoms])
	raise TypeError(f'expected Polygon or MultiPolygon, got {geom.geom_type}')


def _union(a, b):
	return a.union(b)


def union_all(polygons):
	"""Running union of polygons, holes of each polygon are removed before it's added.

	If a union fails, the polygon is skipped and the union goes on with the next one.

	Returns
	-------
	Polygon, MultiPolygon or None if there are no polygons.
	"""
	result = None
	for i, polygon in enumerate(polygons):
		polygon = remove_holes(polygon)
		if result is None:
			result = polygon
			continue

		try:
			result = _union(result, polygon)
		except (GEOSException, ValueError) as e:
			logger.warning('union failed on corridor #%d, skipping it: %s', i, e)

	return result


def footprint(lines, resolution, simplify_tolerance=SIMPLIFY_TOLERANCE):
	"""Area covered by route corridors, without holes. None if no line could be buffered."""
	union = union_all(corridors(lines, resolution, simplify_tolerance))
	if union is None or union.is_empty:
		return None

	parts = _polygon_parts(union)
	if len(parts) == 0:
		return None
	return remove_holes(parts[0] if len(parts) == 1 else MultiPolygon(parts))
