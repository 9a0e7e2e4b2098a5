"""
Clients for the upstream open-data services.
"""

from .ckan import CkanClient, QueryResult
from .socrata import SocrataClient

__all__ = ["CkanClient", "QueryResult", "SocrataClient"]
