"""Stride prefetcher that tracks the last address and stride seen per instruction."""

from dataclasses import dataclass

from .prefetch import ADDRESS_MASK, LOG2_BLOCK_SIZE, LOG2_PAGE_SIZE, Prefetcher

PREFETCH_DEGREE = 3
TRACKER_SETS = 256
TRACKER_WAYS = 4


@dataclass
class TrackerEntry:
    """What is known about one instruction's accesses."""

    ip: int = 0
    last_cl_addr: int = 0
    last_stride: int = 0
    last_used_cycle: int = 0


@dataclass
class Lookahead:
    """An active prefetch stream and how many prefetches remain in it."""

    address: int = 0
    stride: int = 0
    degree: int = 0


class IPStridePrefetcher(Prefetcher):
    """Starts a stream of prefetches once an instruction repeats a stride."""

    def __init__(self, host):
        super().__init__(host)
        self.lookahead = Lookahead()
        self.trackers = [TrackerEntry() for _ in range(TRACKER_SETS * TRACKER_WAYS)]

    def cycle_operate(self):
        """Issue the next prefetch of the active stream, if any."""
        la = self.lookahead
        if la.degree <= 0:
            return
        pf_address = (la.address + (la.stride << LOG2_BLOCK_SIZE)) & ADDRESS_MASK
        same_page = (pf_address >> LOG2_PAGE_SIZE) == (la.address >> LOG2_PAGE_SIZE)
        if self.host.virtual_prefetch or same_page:
            fill_here = self.host.get_occupancy(0, pf_address) < self.host.get_size(0, pf_address) // 2
            if self.host.prefetch_line(0, 0, pf_address, fill_here, 0):
                self.lookahead = Lookahead(pf_address, la.stride, la.degree - 1)
        else:
            self.lookahead = Lookahead()

    def cache_operate(self, addr, ip, cache_hit, access_type, metadata_in):
        """Track the access and start a stream when a stride repeats."""
        cl_addr = addr >> LOG2_BLOCK_SIZE
        stride = 0
        start = ip % TRACKER_SETS
        candidates = range(start, start + TRACKER_WAYS)

        slot = next((i for i in candidates if self.trackers[i].ip == ip), None)
        if slot is not None:
            found = self.trackers[slot]
            stride = cl_addr - found.last_cl_addr
            if stride != 0 and stride == found.last_stride:
                self.lookahead = Lookahead(cl_addr, stride, PREFETCH_DEGREE)
        else:
            slot = min(candidates, key=lambda i: self.trackers[i].last_used_cycle)

        self.trackers[slot] = TrackerEntry(ip, cl_addr, stride, self.host.current_cycle)
        return metadata_in