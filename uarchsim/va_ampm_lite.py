"""Access-map pattern-matching prefetcher over virtual page regions."""

from dataclasses import dataclass

from .prefetch import (
    ADDRESS_MASK,
    BLOCK_SIZE,
    FILL_L2,
    FILL_LLC,
    LOG2_BLOCK_SIZE,
    LOG2_PAGE_SIZE,
    Prefetcher,
)

REGION_COUNT = 128
MAX_DISTANCE = 256
PREFETCH_DEGREE = 2
_OFFSET_MASK = 63


@dataclass
class Region:
    """Bitmaps of accessed and prefetched lines within one page."""

    vpn: int = 0
    access_map: int = 0
    prefetch_map: int = 0
    lru: int = 0


class VaAmpmLitePrefetcher(Prefetcher):
    """Prefetches lines that continue a stride seen in a page's access map."""

    def __init__(self, host):
        super().__init__(host)
        self.lru_counter = 0
        self.regions = [Region() for _ in range(REGION_COUNT)]
        for index in range(REGION_COUNT):
            self._allocate(index, 0)
        self._predicted_index = 0
        self._predicted_vpn = 0

    def _allocate(self, index, vpn):
        self.regions[index] = Region(vpn, 0, 0, self.lru_counter)
        self.lru_counter += 1

    def _find(self, vpn):
        if self._predicted_vpn == vpn:
            return self._predicted_index
        index = next((i for i, r in enumerate(self.regions) if r.vpn == vpn), -1)
        self._predicted_index = index
        self._predicted_vpn = vpn
        return index

    def _lru_index(self):
        best = 0
        for i, region in enumerate(self.regions):
            if region.lru < self.regions[best].lru:
                best = i
        return best

    @staticmethod
    def _split(v_addr):
        return v_addr >> LOG2_PAGE_SIZE, (v_addr >> LOG2_BLOCK_SIZE) & _OFFSET_MASK

    def _find_or_allocate(self, vpn):
        index = self._find(vpn)
        if index == -1:
            index = self._lru_index()
            self._allocate(index, vpn)
        return index

    def check_access(self, v_addr):
        """Return whether the line at ``v_addr`` has been accessed."""
        vpn, offset = self._split(v_addr)
        index = self._find(vpn)
        return index != -1 and bool((self.regions[index].access_map >> offset) & 1)

    def set_access(self, v_addr):
        """Mark the line at ``v_addr`` as accessed, tracking its page if needed."""
        vpn, offset = self._split(v_addr)
        self.regions[self._find_or_allocate(vpn)].access_map |= 1 << offset

    def reset_access(self, v_addr):
        """Clear the accessed mark of the line at ``v_addr``."""
        vpn, offset = self._split(v_addr)
        index = self._find(vpn)
        if index != -1:
            self.regions[index].access_map &= ~(1 << offset)

    def check_prefetch(self, v_addr):
        """Return whether the line at ``v_addr`` has been prefetched."""
        vpn, offset = self._split(v_addr)
        index = self._find(vpn)
        return index != -1 and bool((self.regions[index].prefetch_map >> offset) & 1)

    def set_prefetch(self, v_addr):
        """Mark the line at ``v_addr`` as prefetched, tracking its page if needed."""
        vpn, offset = self._split(v_addr)
        self.regions[self._find_or_allocate(vpn)].prefetch_map |= 1 << offset

    def reset_prefetch(self, v_addr):
        """Clear the prefetched mark of the line at ``v_addr``."""
        vpn, offset = self._split(v_addr)
        index = self._find(vpn)
        if index != -1:
            self.regions[index].prefetch_map &= ~(1 << offset)

    def _issue(self, ip, base_addr, pf_addr, fill_level):
        if (base_addr >> LOG2_BLOCK_SIZE) == (pf_addr >> LOG2_BLOCK_SIZE):
            return False
        return bool(self.host.prefetch_line(ip, base_addr, pf_addr, fill_level, 0))

    def _fill_level(self):
        if self.host.get_occupancy(0, 0) > (self.host.get_size(0, 0) >> 1):
            return FILL_LLC
        return FILL_L2

    def _scan(self, addr, ip, direction):
        issued = 0
        for i in range(1, MAX_DISTANCE + 1):
            step = i * BLOCK_SIZE * direction
            behind = (addr - step) & ADDRESS_MASK
            further_behind = (addr - 2 * step) & ADDRESS_MASK
            ahead = (addr + step) & ADDRESS_MASK
            if (
                self.check_access(behind)
                and self.check_access(further_behind)
                and not self.check_access(ahead)
                and not self.check_prefetch(ahead)
            ):
                if self._issue(ip, addr, ahead, self._fill_level()):
                    self.set_prefetch(ahead)
                    issued += 1
            if issued >= PREFETCH_DEGREE:
                break

    def cache_operate(self, addr, ip, cache_hit, access_type, metadata_in):
        """Record the access and prefetch lines that continue seen strides."""
        vpn = addr >> LOG2_PAGE_SIZE
        if self._find(vpn) == -1:
            self._allocate(self._lru_index(), vpn)
            return metadata_in

        self.set_access(addr)
        self._scan(addr, ip, 1)
        self._scan(addr, ip, -1)
        return metadata_in