import os
import yaml

PROJECT_CONFIG_PATH = os.path.join(os.curdir, 'catchment.yml')
USER_CONFIG_PATH = os.path.join(os.path.expanduser("~"), '.catchment.yml')

# to override this config, put .catchment.yml into your home folder or catchment.yml into the working dir
CONFIG = {
	'routers': {
		'local': 'http://localhost:5000'
	},
	'profile': 'walking',
	'databases': {
		'local': 'postgresql://localhost/osm'
	},
	'analysis': {
		'minutes': 15,
		'speed': 5,  # km/h
		'resolution': 100,  # metres
		'snap_threshold': None,  # None: equal to resolution, 0: no check
		'concavity': .5,
		'length_threshold': 0,  # metres
		'segments': 8,
		'radials': 36,
		'postcode_length': 6,
	},
	'requests': {
		'delay': .1,  # seconds after each table request
		'route_delay': .01,  # seconds between route requests
		'retries': 10,
		'timeout': None,
	}
}


# code by Schlomo https://stackoverflow.com/a/15836901/171278
class MergeError(Exception):
	pass

def data_merge(a, b):
	"""merges b into a and return merged result

	NOTE: tuples and arbitrary objects are not handled as it is totally ambiguous what should happen"""
	key = None
	try:
		if a is None or isinstance(a, (str, int, float)):
			a = b
		elif isinstance(a, list):
			if isinstance(b, list):
				a.extend(b)
			else:
				a.append(b)
		elif isinstance(a, dict):
			if isinstance(b, dict):
				for key in b:
					a[key] = data_merge(a.get(key, None), b[key])
			else:
				raise MergeError('Cannot merge non-dict "%s" into dict "%s"' % (b, a))
		else:
			raise MergeError('NOT IMPLEMENTED "%s" into "%s"' % (b, a))
	except TypeError as e:
		raise MergeError('TypeError "%s" in key "%s" when merging "%s" into "%s"' % (e, key, b, a))
	return a


def load(paths=(USER_CONFIG_PATH, PROJECT_CONFIG_PATH)):
	"""Merges YAML files into CONFIG, later files override earlier ones. Missing files are ignored."""
	global CONFIG
	for p in paths:
		if not os.path.exists(p):
			continue
		with open(p) as f:
			data = yaml.load(f, Loader=yaml.FullLoader)
		if data:
			CONFIG = data_merge(CONFIG, data)
	return CONFIG


load()
