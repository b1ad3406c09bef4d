"""Next-line prefetchers for data and instruction caches."""

from .prefetch import ADDRESS_MASK, BLOCK_SIZE, InstructionPrefetcher, Prefetcher


class NextLinePrefetcher(Prefetcher):
    """On every access, prefetch the following cache line into this level."""

    def cache_operate(self, addr, ip, cache_hit, access_type, metadata_in):
        """Prefetch the line after ``addr`` and pass the metadata on."""
        self.host.prefetch_line(ip, addr, (addr + BLOCK_SIZE) & ADDRESS_MASK, True, 0)
        return metadata_in


class NextLineInstructionPrefetcher(InstructionPrefetcher):
    """On every fetch, prefetch the following code line."""

    def cache_operate(self, v_addr, cache_hit, prefetch_hit, metadata_in):
        """Prefetch the code line after ``v_addr`` and pass the metadata on."""
        self.host.prefetch_code_line((v_addr + BLOCK_SIZE) & ADDRESS_MASK)
        return metadata_in