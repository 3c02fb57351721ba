#!filepath: tickcheck/recorder/__init__.py
from .bounding_box import BoundingBox
from .snapshot import SnapshotDiffer
from .state import Recorder, RecorderState, SavedRecording

__all__ = ["Recorder", "RecorderState", "SavedRecording", "BoundingBox", "SnapshotDiffer"]
