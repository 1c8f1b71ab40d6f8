from catchment import CONFIG


def select_driver(path):
	for driver in drivers.values():
		path_match = driver.can_open(path)
		if path_match:
			return driver, path_match
	else:
		raise ValueError(f'{path}: format not recognized')


def resolve_path(path):
	"""Database names from CONFIG['databases'] turn into URLs, other paths stay as they are."""
	return CONFIG['databases'].get(path, path)


from . import geojsonseq, postgres
drivers = {'geojsonseq': geojsonseq.driver, 'postgres': postgres.driver}
