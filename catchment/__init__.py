from contextlib import ExitStack, contextmanager
from datetime import timedelta
from shapely.geometry import MultiPolygon, Polygon
import argh
import logging
import os
import sys
import time

from .cfg import CONFIG

logger = logging.getLogger(__name__)

ELOG = IPDB = PUDB = None
DEFAULT_ENV_VARS = {'ELOG': 0, 'IPDB': 0, 'PUDB': 0}

for k, v in DEFAULT_ENV_VARS.items():
	var = os.environ.get(k, v)
	try:
		var = int(var)
	except ValueError:
		pass
	globals()[k] = var


LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def setup_logging():
	"""Sends log to stderr (stdout may be the output stream). ELOG=1 env var turns on debug messages."""
	logging.basicConfig(level=logging.DEBUG if ELOG == 1 else logging.INFO, format=LOG_FORMAT, stream=sys.stderr)


class CatchmentDecoratorError(Exception):
	"""A separate class to distinguish misconfiguration discovered when decorating functions."""
	pass


@contextmanager
def debug_capture():
	"""Handles all exceptions with IPDB or PUDB debuggers."""
	with ExitStack() as stack:
		# enter debuggers stack if an env vars is set
		if IPDB == 1:
			import ipdb
			stack.enter_context(ipdb.slaunch_ipdb_on_exception())
		elif PUDB == 1:
			stack.enter_context(_handle_pudb())

		yield stack


def read_stream(path, pbar=False, **kwargs):
	"""Creates a reader of records from a file, stdin (`-`) or a database.

	Parameters
	----------
	path : str
		Path to a file, `-` for stdin, database URL or a database name from CONFIG['databases']. The format is detected from the path (see `catchment.io` for supported drivers).
	pbar : bool, default False
		Show progress bar.

	`kwargs` are passed to drivers, see modules in catchment.io.

	The reader can be iterated directly, or used as context manager to make sure the source is closed even if iteration stops early:

		with read_stream(path) as reader:
			for record in reader: ...
	"""
	from .io import resolve_path, select_driver
	path = resolve_path(path)
	dr, pm = select_driver(path)
	return dr.read_stream(path, pm, pbar=pbar, **kwargs)


def write_stream(path, **kwargs):
	"""Creates a writer object (context manager) to write records one by one. Must be used as context manager.

	Example:

		with write_stream('/tmp/analysis.ndjson') as write:
			for record in records_generator():
				write(record)
	"""
	from .io import resolve_path, select_driver
	path = resolve_path(path)
	dr, pm = select_driver(path)
	return dr.write_stream(path, pm, **kwargs)


def read_geom(path):
	"""Reads the first (multi)polygon from a file: a records stream or any format geopandas opens (GeoJSON, GPKG, ...)."""
	from .io import select_driver
	try:
		select_driver(path)
	except ValueError:
		import geopandas as gpd
		geom = gpd.read_file(path).to_crs(4326).geometry.values[0]
	else:
		with read_stream(path) as reader:
			geom = next(iter(reader)).geometry

	if not isinstance(geom, (Polygon, MultiPolygon)):
		raise ValueError(f'{path}: expected a polygon, got {geom.geom_type}')
	return geom


@contextmanager
def _handle_pudb():
	"""A context manager to capture errors with PUDB, which does not have such feature."""
	# it's put in module global to make it patcheable for tests.
	import pudb
	try:
		yield
	except Exception:
		pudb.post_mortem()


# when you put these types in annotation, @autocli decorator will use these functions instead of the class instatiations
TYPE_OPENERS = {
	Polygon: read_geom,
}


def _drop_skipped(results):
	from .records import Skipped
	for record in results:
		if isinstance(record, Skipped):
			logger.warning('%s skipped: %s', record.postcode, record.reason)
			continue
		yield record


def autocli(func):
	"""
	Turns func into command-line script with argh. Opens the argument annotated with `read_stream` as a records reader, and if return annotation is `write_stream`, adds `--output-path` option (stdout by default) and writes all returned/yielded records there.

	If you import func directly, leaves it as is, but stores for command line entry point.

	E.g. myscript.py:

		@autocli
		def main(origins: read_stream, *, minutes: float = 15) -> write_stream:
			for origin in origins:
				yield origin

	Running:

		$ python3 myscript.py origins.ndjson --minutes 10 --output-path result.ndjson

	Decorated function also can catch exceptions if an env variable is set:

		$ IPDB=1 python3 myscript.py origins.ndjson

	If there's an exception, you'll see IPDB shell to debug the error immediately.

	`Skipped` results are logged and not written.
	"""

	from functools import wraps
	import inspect

	sig = inspect.signature(func)
	has_output_stream = sig.return_annotation == write_stream

	@wraps(func)
	def decorated(*args, output_path='-', **kwargs):
		execution_start = time.time()
		setup_logging()

		with debug_capture() as stack:
			args = list(args)
			if stream_arg_id is not None:
				args[stream_arg_id] = stack.enter_context(read_stream(args[stream_arg_id]))

			if has_output_stream:
				writer = stack.enter_context(write_stream(output_path))
			else:
				writer = lambda record: None

			retval = func(*args, **kwargs)
			retval = retval if inspect.isgeneratorfunction(func) else [retval]

			for record in _drop_skipped(retval):
				writer(record)

		logger.info('Total execution time %ss', str(timedelta(seconds=time.time() - execution_start))[:-5])

	frm = inspect.stack()[1]
	mod = inspect.getmodule(frm[0])

	input_streams = 0
	stream_arg_id = None
	params = list(sig.parameters.values())

	for i, par in enumerate(params):
		an = par.annotation
		if an is not inspect.Parameter.empty:
			if an == read_stream:  # streaming cli app
				input_streams += 1  # must count number of read_stream, as only 1 is allowed
				stream_arg_id = i
				continue

			# arguments with default values are options, they must start with dashes
			if par.default is not inspect.Parameter.empty:
				names = ['--' + par.name.replace('_', '-')]
			else:
				names = [par.name]

			if an != bool:
				decorated = argh.arg(*names, type=TYPE_OPENERS.get(an, an))(decorated)

	if input_streams > 1:
		raise CatchmentDecoratorError(f'Argument of read_stream type can be only one, got {input_streams} instead')

	if inspect.isgeneratorfunction(func) and not has_output_stream:
		raise CatchmentDecoratorError('If function is a generator, it must have return type as `write_stream`: `def main(...) -> write_stream:`.')

	if stream_arg_id is not None and params[stream_arg_id].kind not in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
		raise CatchmentDecoratorError('read_stream argument must be positional')

	# output path is an option of the command line script, not of the function itself
	if has_output_stream:
		extra = inspect.Parameter('output_path', inspect.Parameter.KEYWORD_ONLY, default='-')
		if params and params[-1].kind == inspect.Parameter.VAR_KEYWORD:
			params.insert(len(params) - 1, extra)
		else:
			params.append(extra)
	decorated.__signature__ = sig.replace(parameters=params)

	if mod is not None and mod.__name__ == '__main__':
		parser = argh.ArghParser()
		argh.set_default_command(parser, decorated)
		argh.dispatch(parser)
		return decorated  # returning for test code to check the decorated function

	# otherwise it's an import
	func._argh = decorated
	func._has_output = has_output_stream
	return func


commands = ['hexgrid', 'origins', 'pois', 'reach', 'routes', 'analyze', 'radial', 'prepare']

import importlib

raw_funcs = {i: importlib.import_module(f'catchment.op.{i}').main for i in commands}

__all__ = ['CONFIG']
# creating import shortcuts for commands, e.g.: `catchment.op.reach.main` => `catchment.reach`
# note for devs: this imports all modules in op, hence they should not import many other libraries in module root.
for k, v in raw_funcs.items():
	globals()[k] = v
	__all__.append(k)


def entrypoint():
	parser = argh.ArghParser(description='Pedestrian catchment areas and route quality.')
	parser.add_commands([argh.named(k)(v._argh) for k, v in raw_funcs.items()])
	argh.dispatch(parser)
