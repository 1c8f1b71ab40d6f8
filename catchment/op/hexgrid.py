from catchment import autocli, write_stream
from catchment.records import Hexagon
from catchment import sampling


def parse_bbox(bbox):
	"""Bounding box from `minx,miny,maxx,maxy` string (or a sequence of 4 numbers)."""
	if isinstance(bbox, str):
		bbox = bbox.split(',')
	try:
		minx, miny, maxx, maxy = map(float, bbox)
	except ValueError:
		raise ValueError(f'bbox must be 4 numbers: minx,miny,maxx,maxy, got {bbox!r}')

	if minx >= maxx or miny >= maxy:
		raise ValueError(f'bbox is empty: {bbox!r}')
	return minx, miny, maxx, maxy


@autocli
def main(bbox, *, size: float = 500) -> write_stream:
	"""Hexagons covering a bounding box, to pick one origin per hexagon later (see `origins --hexagons`).

	Parameters
	----------
	bbox : str
		`minx,miny,maxx,maxy` in degrees.
	size : float, default 500
		Hexagon side in metres.
	"""
	cells = sampling.hexagons(parse_bbox(bbox), size)
	for cell, geometry in zip(cells['cell'], cells.geometry):
		yield Hexagon(cell=cell, geometry=geometry)
