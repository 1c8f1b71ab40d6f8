#!/usr/bin/env python

from setuptools import setup, find_packages
from codecs import open
import os.path


def read(fname):
    return open(os.path.join(os.path.dirname(__file__), fname)).read()


def parse_requirements(filename):
    return [line.strip()
            for line in read(filename).strip().split('\n')
            if line.strip()]


pkg = {}
exec(read('catchment/__pkg__.py'), pkg)

readme = "" # read('README.md')
requirements = parse_requirements('requirements.txt')

setup(
    author=pkg['__author__'],
    author_email=pkg['__email__'],
    description=pkg['__description__'],
    license=pkg['__license__'],
    long_description="",  # open('README.md').read(),
    name=pkg['__package_name__'],
    url=pkg['__url__'],
    version=pkg['__version__'],
    classifiers=[
        'Topic :: Scientific/Engineering :: GIS'
    ],
    packages=find_packages(exclude=['tests', 'tests.*']),
    entry_points={'console_scripts': ['catchment=catchment:entrypoint']},
    install_requires=requirements,
    extras_require={
        'test': ['pytest'],
        'debug': ['ipdb', 'pudb'],
    },
    tests_require=['pytest']
)
