from shapely.geometry import LineString, Point
import geopandas as gpd
import logging

logger = logging.getLogger(__name__)


def _points(geom):
	if geom.is_empty:
		return []
	if isinstance(geom, Point):
		return [geom]
	if isinstance(geom, LineString):
		# ray runs along the boundary, take the ends of the overlap
		return [Point(geom.coords[0]), Point(geom.coords[-1])]
	if hasattr(geom, 'geoms'):
		return [p for g in geom.geoms for p in _points(g)]
	return []


def boundary_points(origin, ends, hull):
	"""Finds where rays from the origin cross the hull boundary.

	Parameters
	----------
	origin : Point
	ends : iterable of Point
		Far ends of the rays (e.g. radial points), EPSG:4326.
	hull : Polygon
		Catchment area.

	Returns
	-------
	gpd.GeoDataFrame
		`radial` column (position of the ray in `ends`) and the boundary point closest to the origin along the ray. Rays that don't cross the boundary are left out.
	"""
	boundary = hull.exterior
	radials, geoms = [], []
	for i, end in enumerate(ends):
		ray = LineString([origin, end])
		crossings = _points(ray.intersection(boundary))
		if len(crossings) == 0:
			logger.info('ray #%d from %s does not cross the area boundary', i, origin)
			continue

		radials.append(i)
		geoms.append(min(crossings, key=ray.project))

	return gpd.GeoDataFrame({'radial': radials}, geometry=geoms, crs=4326)
