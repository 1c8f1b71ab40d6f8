"""Candidate destinations around an origin.

All lattices are built in EPSG:3857 around the origin, with metres divided by the latitude cosine, and returned in EPSG:4326. Each sample carries a `cell` id of the cell that generated it:

* `h<col>:<row>` for hexagon centres,
* `g<col>:<row>` for square grid points,
* `r<i>` for radial points.

Sampling is deterministic, the same input gives the same points in the same order.
"""

from catchment import utils
from shapely.geometry import Polygon, box
import geopandas as gpd
import numpy as np

SQRT3 = 3 ** .5
MODES = ('hex', 'grid', 'radial')


def travel_distance(minutes, speed):
	"""Metres passed in `minutes` at `speed` km/h."""
	return minutes / 60 * speed * 1000


def _local_origin(origin):
	x0, y0 = utils.transform(origin, 4326, 3857).coords[0]
	return x0, y0, utils.coslat(origin)


def disc(origin, radius, resolution=16):
	"""Polygon (EPSG:4326) approximating a circle of `radius` metres around origin."""
	local = utils.transform(origin, 4326, 3857)
	return utils.transform(local.buffer(radius / utils.coslat(origin), resolution), 3857, 4326)


def _masked_points(xs, ys, cells, mask):
	gdf = gpd.GeoDataFrame({'cell': cells}, geometry=gpd.points_from_xy(xs, ys), crs=3857).to_crs(4326)
	return gdf[gdf.within(mask)].reset_index(drop=True)


def hex_grid(origin, distance, resolution):
	"""Centres of hexagons with side `resolution` metres covering a disc of `distance` + 2 * `resolution` around origin.

	Flat-top layout: columns are 1.5 sides apart, rows are sqrt(3) sides apart, odd columns are shifted by half a row. The origin is the centre of cell h0:0.

	Returns
	-------
	(gpd.GeoDataFrame, Polygon)
		Sample points with `cell` column, and the mask disc.
	"""
	if resolution <= 0:
		raise ValueError(f'resolution must be positive, got {resolution}')

	radius = distance + 2 * resolution
	mask = disc(origin, radius)
	x0, y0, k = _local_origin(origin)

	side = resolution / k
	dx = 1.5 * side
	dy = SQRT3 * side
	ncols = int(np.ceil(radius / k / dx))
	nrows = int(np.ceil(radius / k / dy)) + 1

	cc, rr = np.meshgrid(np.arange(-ncols, ncols + 1), np.arange(-nrows, nrows + 1), indexing='ij')
	cc, rr = cc.ravel(), rr.ravel()
	xs = x0 + cc * dx
	ys = y0 + rr * dy + np.where(cc % 2 == 1, dy / 2, 0)
	cells = [f'h{c}:{r}' for c, r in zip(cc, rr)]
	return _masked_points(xs, ys, cells, mask), mask


def point_grid(origin, distance, resolution, mask=None):
	"""Square lattice with `resolution` metres step, clipped by mask.

	By default the mask is a disc of `distance` + `resolution`. A custom mask polygon (EPSG:4326) may be given instead, then `distance` is not used.
	"""
	if resolution <= 0:
		raise ValueError(f'resolution must be positive, got {resolution}')

	if mask is None:
		mask = disc(origin, distance + resolution)

	x0, y0, k = _local_origin(origin)
	step = resolution / k
	minx, miny, maxx, maxy = utils.transform(mask, 4326, 3857).bounds

	cols = np.arange(np.floor((minx - x0) / step), np.ceil((maxx - x0) / step) + 1).astype(int)
	rows = np.arange(np.floor((miny - y0) / step), np.ceil((maxy - y0) / step) + 1).astype(int)
	cc, rr = np.meshgrid(cols, rows, indexing='ij')
	cc, rr = cc.ravel(), rr.ravel()
	cells = [f'g{c}:{r}' for c, r in zip(cc, rr)]
	return _masked_points(x0 + cc * step, y0 + rr * step, cells, mask), mask


def radial_points(origin, distance, count):
	"""`count` points at `distance` metres from origin, at bearings 0, 360/count, 2*360/count..."""
	if count < 1:
		raise ValueError(f'count must be positive, got {count}')
	return [utils.destination(origin, 360 / count * i, distance) for i in range(count)]


def radial_mask(points):
	"""Polygon through the radial points (in bearing order)."""
	if len(points) < 3:
		raise ValueError('radial mask needs at least 3 points')
	return Polygon([p.coords[0] for p in points])


def radial_grid(origin, distance, count, resolution=0):
	"""Radial points as sample grid. The mask polygon through them contains the disc of `distance` + `resolution`: its edges touch the disc, the points are a bit farther out.

	Returns
	-------
	(gpd.GeoDataFrame, Polygon)
		Points with `cell` and `bearing` columns, and the mask polygon built from them.
	"""
	if count < 3:
		raise ValueError('radial mask needs at least 3 points')

	# circumradius of the regular polygon with inner radius distance + resolution
	points = radial_points(origin, (distance + resolution) / np.cos(np.pi / count), count)
	gdf = gpd.GeoDataFrame({
		'cell': [f'r{i}' for i in range(count)],
		'bearing': [360 / count * i for i in range(count)],
	}, geometry=points, crs=4326)
	return gdf, radial_mask(points)


def hexagons(bbox, side):
	"""Hexagon polygons with `side` metres covering a bounding box.

	Parameters
	----------
	bbox : tuple
		(minx, miny, maxx, maxy) in EPSG:4326.
	side : float
		Hexagon side in metres.

	Returns
	-------
	gpd.GeoDataFrame with `cell` and `geometry` columns
	"""
	if side <= 0:
		raise ValueError(f'side must be positive, got {side}')

	bounds = box(*bbox)
	local = utils.transform(bounds, 4326, 3857)
	s = side / utils.coslat(bounds)
	minx, miny, maxx, maxy = local.bounds
	dx = 1.5 * s
	dy = SQRT3 * s

	angles = np.radians(np.arange(0, 360, 60))
	corners = np.column_stack([np.cos(angles), np.sin(angles)]) * s

	cells, polygons = [], []
	ncols = int(np.ceil((maxx - minx) / dx)) + 1
	nrows = int(np.ceil((maxy - miny) / dy)) + 1
	for c in range(ncols):
		for r in range(nrows):
			cx = minx + c * dx
			cy = miny + r * dy + (dy / 2 if c % 2 else 0)
			hexagon = Polygon(corners + (cx, cy))
			if hexagon.intersects(local):
				cells.append(f'h{c}:{r}')
				polygons.append(hexagon)

	return gpd.GeoDataFrame({'cell': cells}, geometry=polygons, crs=3857).to_crs(4326)


def sample(origin, distance, mode='hex', resolution=100, count=36, mask=None):
	"""Generates a sample grid in one of the modes: 'hex', 'grid' or 'radial'. Returns (points GeoDataFrame, mask polygon)."""
	if mode == 'hex':
		return hex_grid(origin, distance, resolution)
	if mode == 'grid':
		return point_grid(origin, distance, resolution, mask)
	if mode == 'radial':
		return radial_grid(origin, distance, count, resolution)
	raise ValueError(f'sampling mode must be one of {MODES}, got {mode!r}')
