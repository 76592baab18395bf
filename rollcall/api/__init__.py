"""
API module exposing the ledger over REST.
"""

from .rest_api import RollcallRestAPI, HeaderIdentityProvider, CALLER_HEADER

__all__ = [
    "RollcallRestAPI",
    "HeaderIdentityProvider",
    "CALLER_HEADER",
]
