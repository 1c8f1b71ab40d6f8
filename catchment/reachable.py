from catchment import utils
import geopandas as gpd
import logging
import numpy as np

logger = logging.getLogger(__name__)


def reachable(samples, times, minutes, snap_threshold=None):
	"""Selects the snapped sample points that can be reached within the time budget.

	Parameters
	----------
	samples : gpd.GeoDataFrame
		Sampled points (EPSG:4326), the input of the table request.
	times : gpd.GeoDataFrame
		Result of `routing.travel_times` with the same index: duration and snapped geometry.
	minutes : float
		Time budget.
	snap_threshold : float, optional
		Max distance in metres between a sample and its snapped location. Samples snapped farther are dropped (router moved them to an unrelated road). None or 0 disables the check.

	Returns
	-------
	gpd.GeoDataFrame
		Snapped points with `duration` (int seconds) and `cell` columns, sorted by descending duration.
	"""
	times = times.reindex(samples.index)
	duration = times['duration'].astype(float)
	keep = np.isfinite(duration) & (duration > 0) & (duration <= minutes * 60)

	if snap_threshold:
		orig = samples.geometry
		snap = times.geometry
		has_snap = ~snap.isna()
		gap = np.full(len(samples), np.inf)
		if has_snap.any():
			_, _, gap[has_snap.to_numpy()] = utils.GEOD.inv(
				orig.x[has_snap].to_numpy(), orig.y[has_snap].to_numpy(),
				snap.x[has_snap].to_numpy(), snap.y[has_snap].to_numpy())
		too_far = gap > snap_threshold
		if too_far[keep.to_numpy()].any():
			logger.debug('%d samples snapped farther than %sm', too_far[keep.to_numpy()].sum(), snap_threshold)
		keep &= ~too_far

	result = gpd.GeoDataFrame({
		'cell': samples.loc[keep, 'cell'] if 'cell' in samples else None,
		'duration': duration[keep].round().astype(int),
	}, geometry=times.geometry[keep], crs=4326)
	return result.sort_values('duration', ascending=False, kind='stable')
