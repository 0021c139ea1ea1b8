"""
Case ledger Adapters.

Implementations of protocols for external systems.
"""

from caseledger.adapters.jsonfile import JsonFileSource

__all__ = [
    "JsonFileSource",
]
