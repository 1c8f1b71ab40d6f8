"""Pipeline stages. Each module has `main` decorated with `autocli`: it's a command of `catchment` script and an importable generator of records.

Stage functions process one record and return a new record, or `records.Skipped` if the input gave nothing. `main` yields both, the command line script logs and drops skipped ones.
"""

from catchment import CONFIG
from catchment.progress import Progress
from catchment.records import Skipped
import logging

logger = logging.getLogger(__name__)


def setting(value, key, section='analysis'):
	"""Value of an option, or its default from config if it's None."""
	return CONFIG[section][key] if value is None else value


def snap_threshold(snap, resolution):
	"""Max snapping distance for the reachable set: unset means the grid resolution, 0 disables the check (returns None)."""
	snap = setting(snap, 'snap_threshold')
	if snap is None:
		return resolution
	return snap or None


def check_postcode(record, postcode_length):
	"""Skipped result if postcode of the record does not have the configured length, otherwise None."""
	postcode = record.postcode or ''
	if len(postcode) != postcode_length:
		return Skipped(record.postcode, f'postcode length is {len(postcode)}, expected {postcode_length}')


def of_kind(stream, cls):
	"""Records of class `cls` from a stream, others are dropped."""
	for record in stream:
		if isinstance(record, cls):
			yield record
		else:
			logger.debug('%s record dropped, expected %s', getattr(record, 'kind', record.__class__.__name__), cls.kind)


def track(results, name, every=250):
	"""Passes stage results through, counting how many were not skipped. Logs the summary in the end."""
	progress = Progress(name, every)
	for result in progress.wrap(results):
		if not isinstance(result, Skipped):
			progress.hit()
		yield result

	progress.report()
