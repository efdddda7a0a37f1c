"""Test factories for creating test data."""

from tests.factories.records import RecordFactory, populate, seed_remote, ts

__all__ = [
    "RecordFactory",
    "populate",
    "seed_remote",
    "ts",
]
