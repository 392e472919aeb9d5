#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# wifi_heatmap/sample_store.py
#
# Description:
# Append-only, per-floor collection of signal samples.
# -----------------------------------------------------------------------------

from typing import Iterator, List, Tuple

from .data_models import Sample


class SampleStore:
    """
    Ordered collection of the samples captured on one floor.

    Insertion order is kept for chronological display and export. The
    ``version`` counter increases on every mutation so that derived data such
    as heatmap cells can be recomputed only when the sample set changes.
    """

    def __init__(self, samples=None):
        self._samples: List[Sample] = list(samples) if samples else []
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    def append(self, sample: Sample):
        self._samples.append(sample)
        self._version += 1

    def clear(self):
        self._samples.clear()
        self._version += 1

    def all(self) -> Tuple[Sample, ...]:
        """Returns a read-only snapshot of the samples in capture order."""
        return tuple(self._samples)

    def to_list(self):
        return [sample.to_dict() for sample in self._samples]

    @classmethod
    def from_list(cls, data):
        """Create SampleStore instance from a list of sample dictionaries."""
        return cls([Sample.from_dict(sample_data) for sample_data in data])

    def __len__(self):
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(tuple(self._samples))
