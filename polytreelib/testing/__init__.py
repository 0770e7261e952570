"""Testing utilities for PolyTreeLib consumers."""

from .fixtures import RecordingEntityStore, RecordingNodeStore, StoreCall, StoreCallLog

__all__ = ['RecordingEntityStore', 'RecordingNodeStore', 'StoreCall', 'StoreCallLog']
