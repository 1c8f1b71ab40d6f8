"""How direct routes are: distance ratios, reach per direction, and redundant routes filtering.

Distance ratio is route length divided by the straight-line distance between its ends. It is never below 1, and equals 1 for a straight route.
"""

from catchment import utils
from catchment.records import Directness, DirectnessStats
from shapely.geometry import Point
import numpy as np
import pandas as pd


def segment_index(bearing, segment_count=8):
	"""Number of the angular sector of a bearing. Sector 0 is centered at 0 degrees (north).

	>>> segment_index(0), segment_index(359), segment_index(23), segment_index(90)
	(0, 0, 1, 2)
	"""
	width = 360 / segment_count
	return int(np.floor((bearing + 360 + width / 2) / width)) % segment_count


def measure_routes(lines, segment_count=8):
	"""Geodesic length, straight-line distance, distance ratio, bearing and sector of each route.

	Parameters
	----------
	lines : iterable of LineString
		Routes in EPSG:4326, from the origin to destinations.
	segment_count : int, default 8

	Returns
	-------
	pd.DataFrame with columns: length, distance, ratio, bearing, segment
		Ratio is NaN if the route ends where it starts.
	"""
	rows = []
	for line in lines:
		start, end = Point(line.coords[0][:2]), Point(line.coords[-1][:2])
		distance = utils.geodesic_distance(start, end)
		length = utils.geodesic_length(line)
		bearing = utils.bearing(start, end)
		rows.append({
			'length': length,
			'distance': distance,
			# length can be shorter by float error for a straight route
			'ratio': max(length / distance, 1.0) if distance > 0 else np.nan,
			'bearing': bearing,
			'segment': segment_index(bearing, segment_count),
		})

	table = pd.DataFrame(rows, columns=['length', 'distance', 'ratio', 'bearing', 'segment'])
	return table.astype({'length': float, 'distance': float, 'ratio': float, 'bearing': float, 'segment': int})


def max_distance_per_segment(table, segment_count=8):
	"""Longest straight-line distance (rounded metres) in each sector, 0 where no routes go."""
	result = table.groupby('segment')['distance'].max().reindex(range(segment_count), fill_value=0)
	return tuple(int(round(v)) for v in result)


def _value(v):
	return None if pd.isna(v) else float(v)


def directness_stats(table, distances=None):
	"""Summary of route lengths and distance ratios.

	Ratios are rounded to 6 digits and lengths to metres before aggregation. Standard deviations are population ones (ddof=0), IQR is the difference of linearly interpolated quartiles. Weighted ratio is sum(ratio * length) / sum(length).

	Parameters
	----------
	table : pd.DataFrame
		Result of `measure_routes`.
	distances : iterable of float, optional
		Route lengths reported by the router.

	Returns
	-------
	records.DirectnessStats
	"""
	ratios = table['ratio'].round(6)
	lengths = table['length'].round()
	valid = ratios.notna()

	weighted = None
	if lengths[valid].sum() > 0:
		weighted = (ratios[valid] * lengths[valid]).sum() / lengths[valid].sum()

	reported = pd.Series(list(distances) if distances is not None else [], dtype=float)
	return DirectnessStats(
		distance_ratio_mean=_value(ratios.mean()),
		distance_ratio_std=_value(ratios.std(ddof=0)),
		distance_ratio_iqr=_value(ratios.quantile(.75) - ratios.quantile(.25)),
		distance_ratio_weighted_mean=_value(weighted),
		length_mean=_value(lengths.mean()),
		length_std=_value(lengths.std(ddof=0)),
		distance_mean=_value(reported.mean()),
		distance_std=_value(reported.std(ddof=0)),
	)


def analyze(lines, segment_count=8, distances=None):
	"""Directness of a set of routes from one origin: reach in each sector and ratio statistics."""
	table = measure_routes(lines, segment_count)
	return Directness(
		max_distance_per_segment=max_distance_per_segment(table, segment_count),
		stats=directness_stats(table, distances))


def non_redundant(signatures):
	"""Indexes of routes that are not a beginning of another, longer route.

	A route is redundant when its node sequence is a proper prefix of another route's sequence: its way is already covered by the longer route. Routes without nodes are kept.

	>>> non_redundant([(1, 2, 3), (1, 2, 3, 4, 5), (1, 7)])
	[1, 2]
	"""
	sigs = [tuple(s) if s else () for s in signatures]
	# a sorted list puts every prefix right before the sequences that start with it
	longer = sorted(set(sigs))
	redundant = set()
	for i, s in enumerate(longer[:-1]):
		nxt = longer[i + 1]
		if s and len(nxt) > len(s) and nxt[:len(s)] == s:
			redundant.add(s)

	return [i for i, s in enumerate(sigs) if s not in redundant]
