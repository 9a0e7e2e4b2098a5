"""
CrashMap - collision density map API.

Validates viewport filters, compiles them into safe SQL for an open-data
CKAN (or Socrata) endpoint and returns crash points or spatial bins as
GeoJSON.
"""

__version__ = "0.1.0"
