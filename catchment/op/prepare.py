from catchment import autocli, read_stream, write_stream, utils
from catchment.op import of_kind
from catchment.records import Analysis, WebRecord
from shapely.geometry import MultiLineString

# degrees, ~5 m
TOLERANCE = .00005
CHUNK_LENGTH = 250


def simplify(geom, tolerance=TOLERANCE):
	"""Douglas-Peucker simplification. Zero-length geometries give None."""
	if geom is None or geom.length == 0:
		return None
	return geom.simplify(tolerance, preserve_topology=True)


def prepare_analysis(analysis, tolerance=TOLERANCE, chunk=CHUNK_LENGTH):
	"""Makes a lighter version of an analysis for web maps: simplified area, and routes cut into `chunk` metres pieces.

	`chunk_indexes` holds the position of each piece within its route, so that the pieces can be animated from the origin outwards.
	"""
	pieces, indexes = [], []
	for line in analysis.geometry.geoms:
		line = simplify(line, tolerance)
		if line is None:
			continue

		for i, piece in enumerate(utils.chunk_line(line, chunk)):
			pieces.append(piece)
			indexes.append(i)

	area = simplify(analysis.area.geometry, tolerance) if analysis.area is not None else None
	return WebRecord(
		postcode=analysis.postcode,
		origin=analysis.origin,
		geometry=MultiLineString(pieces),
		area=area,
		chunk_indexes=tuple(indexes),
		osm_id=analysis.osm_id)


@autocli
def main(analyses: read_stream, *, tolerance: float = TOLERANCE, chunk: float = CHUNK_LENGTH) -> write_stream:
	"""Simplifies analysis records for a web map.

	Parameters
	----------
	analyses : iterable of records.Analysis
	tolerance : float, default 0.00005
		Simplification tolerance in degrees.
	chunk : float, default 250
		Length of route pieces in metres.
	"""
	for analysis in of_kind(analyses, Analysis):
		yield prepare_analysis(analysis, tolerance, chunk)
