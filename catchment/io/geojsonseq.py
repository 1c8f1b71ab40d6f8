"""Line-delimited GeoJSON: one record (Feature) per line. Path `-` means stdin/stdout."""
from .base import BaseDriver, BaseReader, BaseWriter
from catchment import records
import logging
import sys

logger = logging.getLogger(__name__)

PATH_REGEXP = r'^(?P<file_path>-|(?:.*/)?(?P<file_own_name>.*)\.(?P<extension>geojsonl\.json|geojsonl|geojsons|ndjson|jsonl))$'


class GeoJsonSeqReader(BaseReader):
	source_regexp = PATH_REGEXP

	def __init__(self, source, pbar: bool = False, **kwargs):
		super().__init__(source, pbar, **kwargs)
		self.skipped = 0

	def _open_handler(self):
		# bytes, so that a line in a broken encoding is skipped like any other malformed line
		if self.source == '-':
			self._handler = sys.stdin.buffer
		else:
			self._handler = open(self.source, 'rb')

	def _read_sync(self):
		for line_num, line in enumerate(self._handler, start=1):
			if not line.strip():
				continue

			try:
				record = records.loads(line.decode('utf-8'))
			except (UnicodeDecodeError, records.RecordError) as e:
				self.skipped += 1
				logger.debug('%s:%d skipped: %s', self.source, line_num, e)
				continue

			yield record

	def _close_handler(self):
		if self._handler is not None and self._handler is not sys.stdin.buffer:
			self._handler.close()
		if self.skipped:
			logger.info('%s: %d malformed lines skipped', self.source, self.skipped)


class GeoJsonSeqWriter(BaseWriter):
	target_regexp = PATH_REGEXP

	def _open_handler(self):
		if self._handler is not None:
			return

		if self.target == '-':
			self._handler = sys.stdout
		else:
			self._handler = open(self.target, 'w', encoding='utf-8')

	def _write_sync(self, record):
		self._handler.write(records.dumps(record) + '\n')
		self._handler.flush()

	def _close_handler(self):
		if self._handler is None:
			return

		if self._handler is sys.stdout:
			self._handler.flush()
		else:
			self._handler.close()
		self._handler = None

	def _cancel(self):
		# records written so far are complete lines, keep them
		self._close_handler()


class GeoJsonSeqDriver(BaseDriver):
	reader = GeoJsonSeqReader
	writer = GeoJsonSeqWriter
	source_regexp = PATH_REGEXP


driver = GeoJsonSeqDriver
