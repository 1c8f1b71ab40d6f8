"""Records passed between the pipeline stages.

Each record kind is a frozen dataclass. On the wire a record is a GeoJSON Feature, one per line:

	{"type": "Feature", "geometry": {...}, "properties": {"kind": "reach", "postcode": "1011AB", ...}}

Fields holding geometries, tuples or nested records declare how they're loaded in the field metadata (`load` key), everything else is copied from JSON as is.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from shapely.geometry import LineString, MultiLineString, MultiPoint, Point, Polygon, mapping, shape
from shapely.geometry.base import BaseGeometry
from typing import Optional, Tuple
import json
import math
import numpy as np

KINDS = {}


class RecordError(ValueError):
	"""Raised when a feature can't be turned into a record."""
	pass


def geometry_loader(geom_class):
	"""Makes a loader that parses GeoJSON geometry and checks its type."""
	def load(data):
		if isinstance(data, BaseGeometry):
			geom = data
		else:
			try:
				geom = shape(data)
			except Exception as e:
				raise RecordError(f'broken geometry: {e}')

		if not isinstance(geom, geom_class):
			raise RecordError(f'expected {geom_class.__name__}, got {geom.geom_type}')
		return geom
	return load


def tuple_loader(item=None):
	def load(data):
		if data is None:
			return ()
		if item is None:
			return tuple(data)
		try:
			return tuple(None if v is None else item(v) for v in data)
		except (TypeError, ValueError) as e:
			raise RecordError(f'bad list item: {e}')
	return load


def text_loader(data):
	if data is not None and not isinstance(data, str):
		raise RecordError(f'expected a string, got {data!r}')
	return data


def text_field(**kwargs):
	return field(metadata={'load': text_loader}, **kwargs)


def optional(loader):
	def load(data):
		return None if data is None else loader(data)
	return load


def geom_field(geom_class, **kwargs):
	return field(metadata={'load': geometry_loader(geom_class)}, **kwargs)


def tuple_field(item=None):
	return field(default=(), metadata={'load': tuple_loader(item)})


def dump(value):
	"""Turns record values into JSON-compatible objects."""
	if isinstance(value, BaseGeometry):
		return mapping(value)
	if is_dataclass(value):
		return {f.name: dump(getattr(value, f.name)) for f in fields(value)}
	if isinstance(value, (tuple, list)):
		return [dump(v) for v in value]
	if isinstance(value, np.generic):
		value = value.item()
	if isinstance(value, float) and math.isnan(value):
		return None
	return value


def load_fields(cls, data):
	"""Instantiates dataclass `cls` from a dict, using loaders from fields metadata."""
	kwargs = {}
	for f in fields(cls):
		if f.name not in data:
			continue
		loader = f.metadata.get('load')
		kwargs[f.name] = data[f.name] if loader is None else loader(data[f.name])

	try:
		return cls(**kwargs)
	except TypeError as e:
		raise RecordError(f'{cls.__name__}: {e}')


def nested_loader(cls):
	def load(data):
		if isinstance(data, cls):
			return data
		if not isinstance(data, dict):
			raise RecordError(f'{cls.__name__} must be an object, got {data!r}')
		return load_fields(cls, data)
	return load


def register(kind):
	"""Class decorator: tags a record class with `kind` and makes it parseable."""
	def decorator(cls):
		cls.kind = kind
		KINDS[kind] = cls
		return cls
	return decorator


# nested values

@dataclass(frozen=True)
class ConcaveHull:
	geometry: Polygon = geom_field(Polygon)
	area: int = 0  # m2
	circumference: int = 0  # m
	area_circumference_ratio: Optional[float] = None


@dataclass(frozen=True)
class DirectnessStats:
	distance_ratio_mean: Optional[float] = None
	distance_ratio_std: Optional[float] = None
	distance_ratio_iqr: Optional[float] = None
	distance_ratio_weighted_mean: Optional[float] = None
	length_mean: Optional[float] = None
	length_std: Optional[float] = None
	distance_mean: Optional[float] = None
	distance_std: Optional[float] = None


@dataclass(frozen=True)
class Directness:
	max_distance_per_segment: Tuple[int, ...] = tuple_field(int)
	stats: DirectnessStats = field(default_factory=DirectnessStats, metadata={'load': nested_loader(DirectnessStats)})


@dataclass(frozen=True)
class Route:
	"""One path from an origin to a destination, as returned by the router. Not written to streams."""
	geometry: LineString
	distance: float
	duration: float
	nodes: Tuple[int, ...] = ()

	@property
	def signature(self):
		return tuple(self.nodes)


@dataclass(frozen=True)
class Skipped:
	"""Result of a stage function when an origin produced no record."""
	postcode: Optional[str]
	reason: str


# records

@register('origin')
@dataclass(frozen=True)
class Origin:
	postcode: str = text_field()
	geometry: Point = geom_field(Point)
	osm_id: Optional[int] = None


@register('hexagon')
@dataclass(frozen=True)
class Hexagon:
	cell: str
	geometry: Polygon = geom_field(Polygon)


@register('poi')
@dataclass(frozen=True)
class Poi:
	category: str
	tag: str
	geometry: Point = geom_field(Point)
	osm_id: Optional[int] = None


@register('reach')
@dataclass(frozen=True)
class Reach:
	postcode: str = text_field()
	origin: Point = geom_field(Point)
	geometry: MultiPoint = geom_field(MultiPoint)
	durations: Tuple[int, ...] = tuple_field(int)
	osm_id: Optional[int] = None


@register('routes')
@dataclass(frozen=True)
class RouteSet:
	postcode: str = text_field()
	origin: Point = geom_field(Point)
	geometry: MultiLineString = geom_field(MultiLineString)
	distances: Tuple[float, ...] = tuple_field(float)
	durations: Tuple[float, ...] = tuple_field(float)
	filtered_route_indexes: Tuple[int, ...] = tuple_field(int)
	osm_id: Optional[int] = None


@register('analysis')
@dataclass(frozen=True)
class Analysis:
	postcode: str = text_field()
	origin: Point = geom_field(Point)
	geometry: MultiLineString = geom_field(MultiLineString)
	area: Optional[ConcaveHull] = field(default=None, metadata={'load': optional(nested_loader(ConcaveHull))})
	directness: Directness = field(default_factory=Directness, metadata={'load': nested_loader(Directness)})
	osm_id: Optional[int] = None


@register('concave-hull')
@dataclass(frozen=True)
class HullRecord:
	postcode: str = text_field()
	origin: Point = geom_field(Point)
	geometry: Polygon = geom_field(Polygon)
	area: int = 0
	circumference: int = 0
	area_circumference_ratio: Optional[float] = None
	osm_id: Optional[int] = None


@register('showcase-routes')
@dataclass(frozen=True)
class ShowcaseRoutes:
	postcode: str = text_field()
	origin: Point = geom_field(Point)
	geometry: MultiLineString = geom_field(MultiLineString)
	distances: Tuple[float, ...] = tuple_field(float)
	durations: Tuple[float, ...] = tuple_field(float)
	distance_ratios: Tuple[float, ...] = tuple_field(float)
	mean_distance_ratio: Optional[float] = None
	osm_id: Optional[int] = None


@register('web')
@dataclass(frozen=True)
class WebRecord:
	postcode: str = text_field()
	origin: Point = geom_field(Point)
	geometry: MultiLineString = geom_field(MultiLineString)
	area: Optional[Polygon] = field(default=None, metadata={'load': optional(geometry_loader(Polygon))})
	chunk_indexes: Tuple[int, ...] = tuple_field(int)
	osm_id: Optional[int] = None


def to_feature(record):
	"""Converts a record into a GeoJSON Feature dict."""
	if getattr(record, 'kind', None) not in KINDS:
		raise RecordError(f'{record.__class__.__name__} is not a stream record')

	properties = {'kind': record.kind}
	for f in fields(record):
		if f.name != 'geometry':
			properties[f.name] = dump(getattr(record, f.name))

	return {'type': 'Feature', 'geometry': dump(record.geometry), 'properties': properties}


def from_feature(feature):
	"""Makes a record from a GeoJSON Feature dict. Raises RecordError if the feature is not a valid record."""
	if not isinstance(feature, dict) or feature.get('type') != 'Feature':
		raise RecordError('not a GeoJSON Feature')

	properties = feature.get('properties') or {}
	kind = properties.get('kind')
	if kind not in KINDS:
		raise RecordError(f'unknown record kind: {kind!r}')

	if feature.get('geometry') is None:
		raise RecordError(f'{kind} record has no geometry')

	data = {k: v for k, v in properties.items() if k != 'kind'}
	data['geometry'] = feature['geometry']
	return load_fields(KINDS[kind], data)


def dumps(record):
	return json.dumps(to_feature(record), ensure_ascii=False)


def loads(line):
	try:
		data = json.loads(line)
	except ValueError as e:
		raise RecordError(f'invalid JSON: {e}')
	return from_feature(data)
