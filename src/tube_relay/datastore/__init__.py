"""Async SQLAlchemy datastore."""

from tube_relay.datastore.client import Datastore

__all__ = ["Datastore"]
