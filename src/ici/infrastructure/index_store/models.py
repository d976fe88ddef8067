"""
Data models for the full-text index store.
"""

from dataclasses import dataclass


class IndexStoreError(Exception):
    """Base exception for index store errors."""
    pass


@dataclass
class IndexHit:
    """A ranked FQN returned by a free-text query."""
    fqn: str
    kind: str
    score: float
