import logging
import time

logger = logging.getLogger(__name__)


class Progress:
	"""Counts items passing through a stage and logs how many of them produced output.

	Owned by one stage call, so nothing is shared between runs:

		progress = Progress('origins', every=250)
		for hexagon in progress.wrap(hexagons):
			...
			progress.hit()
		progress.report()
	"""

	def __init__(self, name, every=250, log=logger):
		self.name = name
		self.every = every
		self.log = log
		self.count = 0
		self.hits = 0
		self.started = time.time()

	def __repr__(self):
		return f'<Progress {self.name}: {self.hits}/{self.count}>'

	@property
	def ratio(self):
		return self.hits / self.count if self.count else 0.0

	def step(self):
		self.count += 1
		if self.every and self.count % self.every == 0:
			self.report()

	def hit(self):
		self.hits += 1

	def wrap(self, iterable):
		for item in iterable:
			yield item
			self.step()

	def report(self):
		elapsed = time.time() - self.started
		self.log.info('%s: %d processed, %d with output (%.1f%%), %.1fs', self.name, self.count, self.hits, self.ratio * 100, elapsed)
