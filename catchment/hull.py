"""Concave hulls of point sets and polygon footprints.

The hull is built with concaveman algorithm (`concave_hull` package): it starts with the convex hull and digs into its long edges towards the inner points. Here `concavity` is the inverse of concaveman's one: 0 gives the convex hull, larger values follow the points more closely. Edges shorter than `length_threshold` metres are left as they are.
"""

from catchment import utils
from catchment.records import ConcaveHull
from concave_hull import concave_hull_indexes
from shapely.geometry import LineString, MultiPoint, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient
import geopandas as gpd
import logging
import numpy as np
import shapely

logger = logging.getLogger(__name__)

METRES_PER_DEGREE = np.pi / 180 * 6_371_008.8

# hull area relative to the squared perimeter, below it the points are on one line
FLATNESS = 1e-9


class HullError(ValueError):
	"""Hull can't be built: too few distinct points, or they're all on one line."""
	pass


def _coordinates(points):
	if isinstance(points, (gpd.GeoSeries, gpd.GeoDataFrame)):
		points = list(points.geometry)
	elif isinstance(points, BaseGeometry):
		points = [points]

	if isinstance(points, np.ndarray) and points.dtype != object:
		return points.reshape(-1, 2).astype(float)
	return shapely.get_coordinates(list(points))


def _local_metres(coords):
	"""Equirectangular projection around the points mean: lon/lat => metres. Linear, so it keeps what's inside and outside."""
	lon0, lat0 = coords.mean(axis=0)
	scale = np.array([np.cos(np.radians(lat0)), 1.0]) * METRES_PER_DEGREE
	return (coords - (lon0, lat0)) * scale


def concave_hull(points, concavity=.5, length_threshold=0):
	"""Builds a concave hull around points.

	Parameters
	----------
	points : GeoSeries, iterable of shapely geometries, MultiPoint, or array of (lon, lat)
		All coordinates of the geometries are used, EPSG:4326.
	concavity : float, default .5
		0 is convex hull, the larger, the more concave.
	length_threshold : float, default 0
		Edges shorter than this (metres) are not dug into.

	Returns
	-------
	Polygon with counter-clockwise exterior and no holes. Its vertices are (rounded) input points.

	Raises
	------
	HullError
		If there are fewer than 3 distinct points, or all of them are on a line.
	"""
	coords = np.unique(np.round(_coordinates(points), utils.COORD_PRECISION), axis=0)
	if len(coords) < 3:
		raise HullError(f'hull needs at least 3 distinct points, got {len(coords)}')

	xy = np.ascontiguousarray(_local_metres(coords), dtype=float)
	flat = MultiPoint(xy).convex_hull
	if not isinstance(flat, Polygon) or flat.area <= FLATNESS * flat.length ** 2:
		raise HullError('points are collinear, hull is not a polygon')

	convex = orient(MultiPoint(coords).convex_hull, 1.0)
	if concavity <= 0:
		return convex

	order = list(concave_hull_indexes(xy, concavity=1 / concavity, length_threshold=length_threshold))
	if order[0] == order[-1]:
		order = order[:-1]

	polygon = Polygon(coords[order])
	if not polygon.is_valid:
		logger.warning('concave hull came out invalid, using convex hull of %d points', len(coords))
		return convex

	# concaveman may cut off a point next to a corner
	if not shapely.dwithin(Polygon(xy[order]), shapely.points(xy), 1e-6).all():
		logger.warning('concave hull left out some of %d points, using convex hull', len(coords))
		return convex

	return orient(polygon, 1.0)


def densify(polygon, length):
	"""Adds vertices every `length` metres along polygon rings (arc length from the ring start). Original vertices are kept.

	New vertices closer than a tenth of `length` to existing ones are not added, so that densifying twice changes nothing.
	"""
	if length <= 0:
		raise ValueError(f'length must be positive, got {length}')

	if isinstance(polygon, MultiPolygon):
		return MultiPolygon([densify(p, length) for p in polygon.geoms])

	step = length / utils.coslat(polygon)

	def densify_ring(ring):
		coords = np.asarray(ring.coords)
		local = utils.transform(LineString(coords), 4326, 3857)
		local_coords = np.asarray(local.coords)
		cum = np.concatenate([[0], np.cumsum(np.hypot(*np.diff(local_coords, axis=0).T))])
		marks = np.arange(step, cum[-1], step)
		if len(marks) == 0:
			return coords

		gaps = np.abs(marks[:, None] - cum[None, :]).min(axis=1)
		marks = marks[gaps > step * .1]
		if len(marks) == 0:
			return coords

		new_points = utils.transform(MultiPoint([local.interpolate(m) for m in marks]), 3857, 4326)
		positions = list(zip(cum[:-1], range(len(coords) - 1), coords[:-1])) + [(m, len(coords), np.asarray(pt.coords[0])) for m, pt in zip(marks, new_points.geoms)]
		positions.sort(key=lambda i: (i[0], i[1]))
		result = [c for _, _, c in positions]
		return np.array(result + [result[0]])

	return Polygon(densify_ring(polygon.exterior), [densify_ring(r) for r in polygon.interiors])


def measure(polygon):
	"""Geodesic area and circumference of a polygon, as ConcaveHull record."""
	area, perimeter = utils.GEOD.geometry_area_perimeter(polygon)
	area = int(round(abs(area)))
	circumference = int(round(perimeter))
	ratio = round(area / circumference, 6) if circumference else None
	return ConcaveHull(geometry=polygon, area=area, circumference=circumference, area_circumference_ratio=ratio)


def build_hull(points, concavity=.5, length_threshold=0):
	"""Concave hull of points with its area and circumference. Raises HullError on degenerate input."""
	return measure(concave_hull(points, concavity, length_threshold))


def footprint_hull(footprint, resolution, concavity=.5, length_threshold=0):
	"""Densifies a (multi)polygon footprint by `resolution` metres and builds the concave hull of its vertices."""
	dense = densify(footprint, resolution)
	parts = dense.geoms if isinstance(dense, MultiPolygon) else [dense]
	coords = np.concatenate([np.asarray(p.exterior.coords) for p in parts])
	return build_hull(coords, concavity, length_threshold)
