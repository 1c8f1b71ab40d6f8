from catchment import autocli, read_stream, write_stream
from catchment.io import resolve_path
from catchment.io.postgres import PATH_REGEXP
import re


@autocli
def main(database, *, pbar: bool = False) -> write_stream:
	"""Points of interest (shops, public transport stops, schools) from a PostGIS database.

	Parameters
	----------
	database : str
		Database name in config, or URL. `/pois` query is used regardless of the query in the URL.
	pbar : bool, default False
		Show progress bar.
	"""
	database = resolve_path(database)
	m = re.match(PATH_REGEXP, database)
	if not m:
		raise ValueError(f'{database} is not a PostgreSQL URL')

	with read_stream(m['engine'] + '/pois', pbar=pbar) as reader:
		yield from reader
