"""Define project metadata
"""

__package_name__ = 'catchment'
__description__ = ('Pedestrian catchment areas and route quality: reachability grids, concave hulls, route directness')
__url__ = ''
__author__ = 'Dmitri Lebedev'
__email__ = 'dl@peshemove.org'
__license__ = 'BSD v3'
__version__ = '0.1.0'
