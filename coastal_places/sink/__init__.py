"""Presentation sinks.

- PresentationSink: Abstract base class (publish / clear / center / notify)
- JsonLinesSink: One JSON object per event on a text stream
"""

from coastal_places.sink.base import ERROR, INFO, WARNING, PresentationSink
from coastal_places.sink.jsonl import CityRecord, JsonLinesSink

__all__ = [
    "ERROR",
    "INFO",
    "WARNING",
    "CityRecord",
    "JsonLinesSink",
    "PresentationSink",
]
