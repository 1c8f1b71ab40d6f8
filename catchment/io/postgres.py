"""Reads origins and points of interest from a PostGIS database imported with osm2pgsql (hstore tags).

Path format: `postgresql://[user[:password]@]host[:port]/db[/origins|/pois]`, origins by default.
"""
from .base import BaseDriver, BaseReader
from catchment import CONFIG, records
from shapely.geometry import mapping, shape
import json
import logging
import re

logger = logging.getLogger(__name__)

PATH_REGEXP = r'^(?P<engine>postgresql\://(?:(?P<user>[^:\/?#\s@]+)(?:\:(?P<password>[^:\/?#\s@]+))?@)?(?P<host>[^?/#\s:@]+)(?:\:(?P<port>\d+))?/(?P<db>[^?/#\s]+))(?:/(?P<query>origins|pois))?$'

POSTCODE_TAG = "tags->'addr:postcode'"

# category => (tag expression, condition, tables)
POI_CATEGORIES = {
	'shops': ('shop', "shop IN ('supermarket', 'bakery', 'deli', 'convenience', 'food')", ('planet_osm_point', 'planet_osm_polygon')),
	'public_transport': ('COALESCE(highway, railway)', "highway = 'bus_stop' OR railway IN ('station', 'tram_stop')", ('planet_osm_point',)),
	'schools': ('amenity', "amenity IN ('school', 'kindergarten', 'college', 'university')", ('planet_osm_point', 'planet_osm_polygon')),
}

BOUNDARY_FILTER = 'ST_Intersects(ST_Transform(ST_SetSRID(ST_GeomFromGeoJSON(:boundary), 4326), 3857), way)'


def connect_postgres(connection_string):
	from sqlalchemy import create_engine
	m = re.match(PATH_REGEXP, connection_string)
	engine = create_engine(m['engine'])
	return engine


def postcode_column(length=6):
	"""SQL expression for a postcode grouped by first `length` characters (6 is a full Dutch postcode)."""
	if length == 6:
		return POSTCODE_TAG
	if length in (4, 5):
		return f'substring(({POSTCODE_TAG}) from 1 for {int(length)})'
	raise ValueError(f'Invalid postcode length: {length}, should be 4, 5 or 6')


def origins_query(postcode_length=6, boundary=False):
	"""Per postcode area: the address nearest to the centroid of all addresses with that postcode.

	If `boundary` is True, the query expects `:boundary` parameter (GeoJSON polygon) and uses only addresses intersecting it.
	"""
	col = postcode_column(postcode_length)
	return f"""
		WITH centroids AS (
			SELECT {col} AS postcode, ST_Centroid(ST_Collect(way)) AS centroid
			FROM planet_osm_point
			WHERE {col} <> '' AND {BOUNDARY_FILTER if boundary else 'TRUE'}
			GROUP BY {col}
		)
		SELECT c.postcode, nearest.osm_id, ST_AsGeoJSON(ST_Transform(nearest.way, 4326)) AS geometry
		FROM centroids c
		CROSS JOIN LATERAL (
			SELECT osm_id, way
			FROM planet_osm_point
			WHERE {col} = c.postcode
			ORDER BY way <-> c.centroid
			LIMIT 1
		) nearest"""


def nearest_address_query():
	"""Address (with house number and postcode) inside a hexagon, nearest to its centre."""
	return f"""
		SELECT osm_id, {POSTCODE_TAG} AS postcode, ST_AsGeoJSON(ST_Transform(way, 4326), 7) AS geometry
		FROM planet_osm_point
		WHERE
			"addr:housenumber" <> ''
			AND {POSTCODE_TAG} <> ''
			AND ST_Intersects(ST_Transform(ST_SetSRID(ST_GeomFromGeoJSON(:hexagon), 4326), 3857), way)
		ORDER BY ST_Transform(ST_SetSRID(ST_GeomFromGeoJSON(:center), 4326), 3857) <-> way
		LIMIT 1"""


def pois_query():
	"""Shops, public transport stops and schools, each with its category and tag value."""
	parts = []
	for category, (tag, condition, tables) in POI_CATEGORIES.items():
		source = ' UNION '.join(f'SELECT osm_id, shop, amenity, highway, railway, way FROM {t}' for t in tables)
		parts.append(f"""
			SELECT '{category}' AS category, {tag} AS tag, osm_id, ST_AsGeoJSON(ST_Transform(ST_Centroid(way), 4326)) AS geometry
			FROM ({source}) u
			WHERE {condition}""")

	return '\nUNION ALL\n'.join(parts)


class PostgresReader(BaseReader):
	"""Streams records from PostGIS with a server-side cursor. The connection is held until the reader is closed.

	Parameters
	----------
	source : str
		Database URL, see module docstring.
	postcode_length : int, optional
		Postcode grouping for origins, CONFIG['analysis']['postcode_length'] by default.
	boundary : Polygon, optional
		Use only addresses intersecting it.
	hexagons : iterable of records.Hexagon, optional
		If given, reads one origin per hexagon (the nearest address to its centre) instead of one per postcode.
	"""

	def __init__(self, source, pbar: bool = False, postcode_length=None, boundary=None, hexagons=None, **kwargs):
		super().__init__(source, pbar, **kwargs)
		self.path_match = re.match(PATH_REGEXP, source)
		if not self.path_match:
			raise ValueError(f'{source} is not a PostgreSQL URL')

		self.query = self.path_match['query'] or 'origins'
		self.postcode_length = postcode_length or CONFIG['analysis']['postcode_length']
		# check early, before connecting
		postcode_column(self.postcode_length)
		self.boundary = boundary
		self.hexagons = hexagons
		self._engine = None

	def _open_handler(self):
		self._engine = connect_postgres(self.source)
		self._handler = self._engine.connect()

	def _execute(self, sql, params=None):
		from sqlalchemy import text
		return self._handler.execution_options(stream_results=True).execute(text(sql), params or {})

	def _read_sync(self):
		if self.query == 'pois':
			yield from self._read_pois()
		elif self.hexagons is not None:
			yield from self._read_hexagon_origins()
		else:
			yield from self._read_origins()

	def _read_origins(self):
		params = {}
		if self.boundary is not None:
			params['boundary'] = json.dumps(mapping(self.boundary))

		for row in self._execute(origins_query(self.postcode_length, self.boundary is not None), params):
			if row.geometry is None:
				continue
			yield records.Origin(postcode=row.postcode, geometry=shape(json.loads(row.geometry)), osm_id=row.osm_id)

	def _read_hexagon_origins(self):
		sql = nearest_address_query()
		for hexagon in self.hexagons:
			geom = hexagon.geometry
			params = {'hexagon': json.dumps(mapping(geom)), 'center': json.dumps(mapping(geom.centroid))}
			row = self._execute(sql, params).first()
			if row is None:
				yield records.Skipped(None, f'no address in hexagon {hexagon.cell}')
				continue
			yield records.Origin(postcode=row.postcode, geometry=shape(json.loads(row.geometry)), osm_id=row.osm_id)

	def _read_pois(self):
		for row in self._execute(pois_query()):
			yield records.Poi(category=row.category, tag=row.tag, geometry=shape(json.loads(row.geometry)), osm_id=row.osm_id)

	def _close_handler(self):
		if self._handler is not None:
			self._handler.close()
			self._handler = None
		if self._engine is not None:
			self._engine.dispose()
			self._engine = None


class PostgresDriver(BaseDriver):
	reader = PostgresReader
	source_regexp = PATH_REGEXP

	@classmethod
	def write_stream(cls, path, path_match, **kwargs):
		raise NotImplementedError('writing records to PostgreSQL is not supported')


driver = PostgresDriver
