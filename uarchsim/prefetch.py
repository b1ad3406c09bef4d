"""Prefetcher interfaces, the host they issue requests to, and no-op prefetchers."""

from collections import Counter
from typing import Protocol

LOG2_BLOCK_SIZE = 6
BLOCK_SIZE = 1 << LOG2_BLOCK_SIZE
LOG2_PAGE_SIZE = 12
PAGE_SIZE = 1 << LOG2_PAGE_SIZE
FILL_L1 = 1
FILL_L2 = 2
FILL_LLC = 4
ADDRESS_MASK = (1 << 64) - 1


class CacheHost(Protocol):
    """The cache a data prefetcher is attached to."""

    current_cycle: int
    virtual_prefetch: bool

    def prefetch_line(self, ip, base_addr, pf_addr, fill_this_level, metadata) -> bool:
        """Queue a prefetch of ``pf_addr``; return whether it was accepted."""

    def get_occupancy(self, queue, addr) -> int:
        """Return how many entries of ``queue`` are in use."""

    def get_size(self, queue, addr) -> int:
        """Return the capacity of ``queue``."""


class InstructionHost(Protocol):
    """The core whose instruction cache an instruction prefetcher serves."""

    def prefetch_code_line(self, pf_addr) -> bool:
        """Queue a prefetch of the code line at ``pf_addr``."""


class _EventCounting:
    """Keeps a tally of the events a prefetcher has been told about."""

    @property
    def events(self) -> Counter:
        """Counts of the events seen so far, by name."""
        return self.__dict__.setdefault("_events", Counter())

    def _record(self, event: str) -> None:
        self.events[event] += 1


class Prefetcher(_EventCounting):
    """A data prefetcher; the default behaviour issues nothing."""

    def __init__(self, host):
        self.host = host

    def cache_operate(self, addr, ip, cache_hit, access_type, metadata_in):
        """React to a cache access and return the metadata to pass on."""
        self._record("accesses")
        return metadata_in

    def cache_fill(self, addr, set_index, way, prefetch, evicted_addr, metadata_in):
        """React to a line being filled and return the metadata to pass on."""
        self._record("fills")
        return metadata_in

    def cycle_operate(self):
        """Do per-cycle work."""
        self._record("cycles")

    def final_stats(self):
        """Return the end-of-run event counts."""
        return dict(self.events)


class InstructionPrefetcher(_EventCounting):
    """An instruction prefetcher; the default behaviour issues nothing."""

    def __init__(self, host):
        self.host = host

    def branch_operate(self, ip, branch_type, branch_target):
        """React to a branch being fetched."""
        self._record("branches")

    def cache_operate(self, v_addr, cache_hit, prefetch_hit, metadata_in):
        """React to an instruction cache access and return the metadata."""
        self._record("accesses")
        return metadata_in

    def cache_fill(self, v_addr, set_index, way, prefetch, evicted_v_addr, metadata_in):
        """React to a code line being filled and return the metadata."""
        self._record("fills")
        return metadata_in

    def cycle_operate(self):
        """Do per-cycle work."""
        self._record("cycles")

    def final_stats(self):
        """Return the end-of-run event counts."""
        return dict(self.events)


class NoPrefetcher(Prefetcher):
    """A data prefetcher that never prefetches."""


class NoInstructionPrefetcher(InstructionPrefetcher):
    """An instruction prefetcher that never prefetches."""