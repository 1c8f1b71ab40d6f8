from catchment import autocli, read_stream, write_stream
from catchment.io import resolve_path
from catchment.io.postgres import PATH_REGEXP
from catchment.op import of_kind, setting, track
from catchment.records import Hexagon
from shapely.geometry import Polygon
import logging
import re

logger = logging.getLogger(__name__)


@autocli
def main(database, *, postcode_length: int = None, intersects: Polygon = None, hexagons=None, pbar: bool = False) -> write_stream:
	"""Origins of catchment analysis: one address per postcode area, or one address per hexagon.

	Parameters
	----------
	database : str
		Database name in config, or URL.
	postcode_length : int, optional
		Group addresses by first 4, 5 or all 6 characters of postcode. CONFIG['analysis']['postcode_length'] by default.
	intersects : Polygon or path to a file with it, optional
		Use only addresses inside this polygon.
	hexagons : str, optional
		Path to hexagon records (see `hexgrid` command). If given, takes the address nearest to the centre of each hexagon instead of postcode areas.
	pbar : bool, default False
		Show progress bar.
	"""
	postcode_length = setting(postcode_length, 'postcode_length')
	database = resolve_path(database)
	m = re.match(PATH_REGEXP, database)
	if not m:
		raise ValueError(f'{database} is not a PostgreSQL URL')
	source = m['engine'] + '/origins'

	if hexagons is None:
		with read_stream(source, pbar=pbar, postcode_length=postcode_length, boundary=intersects) as reader:
			yield from track(reader, 'postcodes')
		return

	with read_stream(hexagons) as cells:
		cells = of_kind(cells, Hexagon)
		if intersects is not None:
			cells = (c for c in cells if c.geometry.intersects(intersects))

		with read_stream(source, pbar=pbar, postcode_length=postcode_length, hexagons=cells) as reader:
			yield from track(reader, 'hexagons')
