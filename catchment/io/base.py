"""
Base driver for streaming io of records. Does not implement actual reading/writing to files/databases.
"""

from tqdm import tqdm
import logging
import re

logger = logging.getLogger(__name__)


class BaseReader:
	"""Base class for record-streaming format drivers.

	Readers yield records (see `catchment.records`) one by one, so that the next record is read only when the consumer asks for it. The source is opened on the first read (or when entering context) and closed exactly once:

		with GeoJsonSeqReader('origins.ndjson') as reader:
			for record in reader:
				print(record)

	Iterating without context manager also works, then the source is closed when it's exhausted.
	"""

	def __init__(self, source, pbar: bool = False, **kwargs):
		self.source = source
		self.pbar = pbar
		self.kwargs = kwargs
		self.total = None

		self._reader = None
		self._records = None
		self._bar = None
		self._handler = None
		self._opened = False
		self._closed = False

	def _pbar(self, iterable=None, disable=None, **kwargs):
		if disable is None: disable = not self.pbar
		kwargs.update({'disable': disable, 'unit_scale': 1})
		return tqdm(iterable, **kwargs)

	def __enter__(self):
		self.open()
		return self

	def __exit__(self, exc_type, exc_value, exc_trace):
		logger.debug('reader %s: exit', self.source)
		self.close()

	def __iter__(self):
		return self

	def __next__(self):
		if self._reader is None:
			self.open()
			self._records = self._read_sync()
			self._bar = self._pbar(self._records, desc=f'records in {self.source}', total=self.total)
			self._reader = iter(self._bar)

		try:
			return next(self._reader)
		except StopIteration:
			self.close()
			raise

	def open(self):
		if not self._opened:
			self._opened = True
			self._open_handler()

	def close(self):
		if self._closed or not self._opened:
			return
		self._closed = True
		if self._reader is not None:
			self._bar.close()
			self._records.close()
		self._close_handler()

	def _open_handler(self):
		raise NotImplementedError

	def _read_sync(self):
		raise NotImplementedError

	def _close_handler(self):
		raise NotImplementedError


class BaseWriter:
	"""Writer is a callable context manager: each call writes one record.

		with GeoJsonSeqWriter('-') as write:
			for record in records:
				write(record)
	"""

	def __init__(self, target, **kwargs):
		self.target = target
		self.kwargs = kwargs
		self._handler = None

	def __enter__(self):
		logger.debug('enter writer %s', self.target)
		self._open_handler()
		return self

	def __exit__(self, exc_type, exc_value, exc_trace):
		logger.debug('writer %s: exit', self.target)
		if exc_type is None:
			self._close_handler()
		else:
			self._cancel()

	def __call__(self, record):
		if record is None:
			return
		self._write_sync(record)

	def _write_sync(self, record):
		raise NotImplementedError

	def _open_handler(self):
		raise NotImplementedError

	def _cancel(self):
		raise NotImplementedError

	def _close_handler(self):
		raise NotImplementedError


class BaseDriver:
	reader = BaseReader
	writer = BaseWriter

	source_regexp = None

	@classmethod
	def can_open(cls, source):
		if cls.source_regexp is not None:
			return re.match(cls.source_regexp, source)

		return None

	@classmethod
	def read_stream(cls, path, path_match, pbar=False, **kwargs):
		return cls.reader(path, pbar=pbar, **kwargs)

	@classmethod
	def write_stream(cls, path, path_match, **kwargs):
		return cls.writer(path, **kwargs)
