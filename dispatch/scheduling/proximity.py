"""Coarse distance and travel-time estimates from postal codes.

The zip-prefix heuristic is a ranking signal only, not a real distance.
"""

import math
import re
from abc import ABC, abstractmethod

from dispatch.core.config import DefaultsConfig
from dispatch.core.schemas import Job

_ZIP_RE = re.compile(r"\b(\d{5})\b")

_UNKNOWN_MILES = 10.0


class DistanceEstimator(ABC):
    """Capability interface so a real geospatial provider can replace the heuristic."""

    @abstractmethod
    def miles_between(self, zip_a: str | None, zip_b: str | None) -> float:
        """Estimated driving distance in miles."""


class ZipPrefixEstimator(DistanceEstimator):
    """Same 3-digit prefix: 5 mi, same 2-digit prefix: 15 mi, else 25 mi."""

    def miles_between(self, zip_a: str | None, zip_b: str | None) -> float:
        if not zip_a or not zip_b:
            return _UNKNOWN_MILES
        if zip_a[:3] == zip_b[:3]:
            return 5.0
        if zip_a[:2] == zip_b[:2]:
            return 15.0
        return 25.0


def extract_zip(text: str | None) -> str | None:
    """First standalone 5-digit number in free text."""
    if not text:
        return None
    match = _ZIP_RE.search(text)
    return match.group(1) if match else None


def job_zip(job: Job) -> str | None:
    return extract_zip(job.service_address or job.customer.address)


def estimate_travel_minutes(miles: float) -> int:
    """Drive time: slow in town, faster on longer highway legs."""
    if miles <= 0:
        return 0
    if miles <= 5:
        return math.ceil(miles * 3)
    if miles <= 15:
        return math.ceil(miles * 2)
    return math.ceil(miles * 1.33)


def travel_gap_ok(
    gap_minutes: int,
    miles: float,
    defaults: DefaultsConfig | None = None,
) -> bool:
    """Whether ``gap_minutes`` between two jobs covers the drive plus a margin."""
    margin = (defaults or DefaultsConfig()).min_travel_buffer_minutes
    return gap_minutes >= estimate_travel_minutes(miles) + margin
