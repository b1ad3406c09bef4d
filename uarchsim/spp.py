"""Signature path prefetcher: learns per-page delta signatures and walks them ahead."""

from dataclasses import dataclass, field
from enum import IntEnum

from .prefetch import (
    ADDRESS_MASK,
    BLOCK_SIZE,
    LOG2_BLOCK_SIZE,
    LOG2_PAGE_SIZE,
    PAGE_SIZE,
    Prefetcher,
)

# Signature table
ST_SET = 1
ST_WAY = 256
ST_TAG_BIT = 16
ST_TAG_MASK = (1 << ST_TAG_BIT) - 1
SIG_SHIFT = 3
SIG_BIT = 12
SIG_MASK = (1 << SIG_BIT) - 1
SIG_DELTA_BIT = 7

# Pattern table
PT_SET = 512
PT_WAY = 4
C_SIG_BIT = 4
C_DELTA_BIT = 4
C_SIG_MAX = (1 << C_SIG_BIT) - 1
C_DELTA_MAX = (1 << C_DELTA_BIT) - 1

# Prefetch filter
QUOTIENT_BIT = 10
REMAINDER_BIT = 6
HASH_BIT = QUOTIENT_BIT + REMAINDER_BIT + 1
FILTER_SET = 1 << QUOTIENT_BIT
FILL_THRESHOLD = 90
PF_THRESHOLD = 25

# Global register
GLOBAL_COUNTER_BIT = 10
GLOBAL_COUNTER_MAX = (1 << GLOBAL_COUNTER_BIT) - 1
MAX_GHR_ENTRY = 8

DEFAULT_QUEUE_SIZE = 32
_OFFSETS_PER_PAGE = PAGE_SIZE // BLOCK_SIZE
_OFFSET_MASK = 0x3F


def get_hash(key):
    """Mix a 64-bit key: a shift/add mixer followed by a multiplicative step."""
    m = ADDRESS_MASK
    key &= m
    key = (key + (key << 12)) & m
    key ^= key >> 22
    key = (key + (key << 4)) & m
    key ^= key >> 9
    key = (key + (key << 10)) & m
    key ^= key >> 2
    key = (key + (key << 7)) & m
    key ^= key >> 12
    return ((key >> 3) * 2654435761) & m


def sig_delta_of(delta):
    """Return the sign-magnitude form of ``delta`` folded into signatures."""
    if delta < 0:
        return -delta + (1 << (SIG_DELTA_BIT - 1))
    return delta


def _advance(sig, delta):
    return ((sig << SIG_SHIFT) ^ sig_delta_of(delta)) & SIG_MASK


class FilterRequest(IntEnum):
    """Kinds of event the prefetch filter is consulted on."""

    SPP_L2C_PREFETCH = 0
    SPP_LLC_PREFETCH = 1
    L2C_DEMAND = 2
    L2C_EVICT = 3


@dataclass(frozen=True)
class SignatureUpdate:
    """Outcome of a signature table access."""

    last_sig: int = 0
    curr_sig: int = 0
    delta: int = 0


@dataclass
class _SignatureEntry:
    valid: bool = False
    tag: int = 0
    last_offset: int = 0
    sig: int = 0
    lru: int = 0


class SignatureTable:
    """Per-page signatures of recent access deltas, replaced by LRU."""

    def __init__(self):
        self.sets = [
            [_SignatureEntry(lru=way) for way in range(ST_WAY)] for _ in range(ST_SET)
        ]

    def read_and_update_sig(self, page, page_offset, ghr=None):
        """Record an access to ``page_offset`` of ``page`` and return the signatures."""
        ways = self.sets[get_hash(page) % ST_SET]
        partial_page = page & ST_TAG_MASK
        last_sig = curr_sig = delta = 0

        entry = next((e for e in ways if e.valid and e.tag == partial_page), None)
        if entry is not None:
            delta = page_offset - entry.last_offset
            if delta:
                last_sig = entry.sig
                entry.sig = _advance(last_sig, delta)
                curr_sig = entry.sig
                entry.last_offset = page_offset
        else:
            entry = next((e for e in ways if not e.valid), None)
            if entry is None:
                entry = next((e for e in ways if e.lru == ST_WAY - 1), None)
                if entry is None:
                    raise RuntimeError("signature table has no replacement victim")
            entry.valid = True
            entry.tag = partial_page
            entry.sig = 0
            entry.last_offset = page_offset
            if ghr is not None:
                found = ghr.check_entry(page_offset)
                if found is not None:
                    history = ghr.entries[found]
                    entry.sig = _advance(history.sig, history.delta)
                    curr_sig = entry.sig

        position = entry.lru
        for other in ways:
            if other.lru < position:
                other.lru += 1
                if other.lru >= ST_WAY:
                    raise RuntimeError(f"signature table LRU value {other.lru} out of range")
        entry.lru = 0
        return SignatureUpdate(last_sig, curr_sig, delta)


@dataclass
class PatternMatch:
    """Prefetch candidates read for one signature and the path to follow next."""

    deltas: list = field(default_factory=list)
    confidences: list = field(default_factory=list)
    lookahead_way: int | None = None
    lookahead_delta: int = 0
    lookahead_conf: int = 0
    depth: int = 0


class PatternTable:
    """Counts how often each delta follows a signature."""

    def __init__(self):
        self.delta = [[0] * PT_WAY for _ in range(PT_SET)]
        self.c_delta = [[0] * PT_WAY for _ in range(PT_SET)]
        self.c_sig = [0] * PT_SET

    @staticmethod
    def _set_of(sig):
        return get_hash(sig) % PT_SET

    def update_pattern(self, last_sig, curr_delta):
        """Strengthen the correlation between ``last_sig`` and ``curr_delta``."""
        s = self._set_of(last_sig)
        deltas = self.delta[s]
        counts = self.c_delta[s]
        if curr_delta in deltas:
            counts[deltas.index(curr_delta)] += 1
        else:
            victim = None
            min_counter = C_SIG_MAX
            for way, count in enumerate(counts):
                if count < min_counter:
                    victim, min_counter = way, count
            if victim is None:
                raise RuntimeError("pattern table has no replacement victim")
            deltas[victim] = curr_delta
            counts[victim] = 0

        self.c_sig[s] += 1
        if self.c_sig[s] > C_SIG_MAX:
            self.c_delta[s] = [count >> 1 for count in counts]
            self.c_sig[s] >>= 1

    def read_pattern(self, curr_sig, lookahead_conf, depth, global_accuracy):
        """Return the deltas confident enough to prefetch after ``curr_sig``."""
        s = self._set_of(curr_sig)
        c_sig = self.c_sig[s]
        if not c_sig:
            return PatternMatch(lookahead_conf=lookahead_conf, depth=depth)

        match = PatternMatch()
        max_conf = 0
        for way, (delta, count) in enumerate(zip(self.delta[s], self.c_delta[s])):
            if depth:
                pf_conf = global_accuracy * count // c_sig * lookahead_conf // 100
            else:
                pf_conf = 100 * count // c_sig
            if pf_conf >= PF_THRESHOLD:
                match.deltas.append(delta)
                match.confidences.append(pf_conf)
                if pf_conf > max_conf:
                    match.lookahead_way = way
                    match.lookahead_delta = delta
                    max_conf = pf_conf

        match.lookahead_conf = max_conf
        match.depth = depth + 1 if max_conf >= PF_THRESHOLD else depth
        return match


@dataclass
class _HistoryEntry:
    valid: bool = False
    sig: int = 0
    confidence: int = 0
    offset: int = 0
    delta: int = 0


class GlobalRegister:
    """Global prefetch accuracy counters and page-crossing history."""

    def __init__(self):
        self.pf_useful = 0
        self.pf_issued = 0
        self.global_accuracy = 0
        self.entries = [_HistoryEntry() for _ in range(MAX_GHR_ENTRY)]

    def update_entry(self, pf_sig, pf_confidence, pf_offset, pf_delta):
        """Remember a prefetch that crossed a page; return the index used."""
        min_conf = 100
        victim = None
        for i, entry in enumerate(self.entries):
            if entry.valid and entry.offset == pf_offset:
                entry.sig = pf_sig
                entry.confidence = pf_confidence
                entry.delta = pf_delta
                return i
            if entry.confidence < min_conf:
                min_conf = entry.confidence
                victim = i
        if victim is None:
            raise RuntimeError("global history register has no replacement victim")
        self.entries[victim] = _HistoryEntry(True, pf_sig, pf_confidence, pf_offset, pf_delta)
        return victim

    def check_entry(self, page_offset):
        """Return the index of the most confident entry for ``page_offset``, or None."""
        best = None
        max_conf = 0
        for i, entry in enumerate(self.entries):
            if entry.offset == page_offset and entry.confidence > max_conf:
                max_conf = entry.confidence
                best = i
        return best


class PrefetchFilter:
    """Quotient/remainder filter of recently prefetched and used lines."""

    def __init__(self, ghr):
        self.ghr = ghr
        self.remainder_tag = [0] * FILTER_SET
        self.valid = [False] * FILTER_SET
        self.useful = [False] * FILTER_SET

    def check(self, check_addr, filter_request):
        """Apply ``filter_request`` to the line; False means do not prefetch it."""
        request = FilterRequest(filter_request)
        hashed = get_hash(check_addr >> LOG2_BLOCK_SIZE)
        quotient = (hashed >> REMAINDER_BIT) & (FILTER_SET - 1)
        remainder = hashed % (1 << REMAINDER_BIT)

        if request in (FilterRequest.SPP_L2C_PREFETCH, FilterRequest.SPP_LLC_PREFETCH):
            seen = self.valid[quotient] or self.useful[quotient]
            if seen and self.remainder_tag[quotient] == remainder:
                return False
            # Low-confidence LLC prefetches stay unrecorded so a later L2 prefetch can go out.
            if request is FilterRequest.SPP_L2C_PREFETCH:
                self.valid[quotient] = True
                self.useful[quotient] = False
                self.remainder_tag[quotient] = remainder
        elif request is FilterRequest.L2C_DEMAND:
            if self.remainder_tag[quotient] == remainder and not self.useful[quotient]:
                self.useful[quotient] = True
                if self.valid[quotient]:
                    self.ghr.pf_useful += 1
        else:
            if self.valid[quotient] and not self.useful[quotient] and self.ghr.pf_useful:
                self.ghr.pf_useful -= 1
            self.valid[quotient] = False
            self.useful[quotient] = False
            self.remainder_tag[quotient] = 0
        return True


class SPPPrefetcher(Prefetcher):
    """Issues prefetches along the most confident signature path within a page."""

    def __init__(self, host, queue_size=DEFAULT_QUEUE_SIZE):
        super().__init__(host)
        self.queue_size = queue_size
        self.ghr = GlobalRegister()
        self.signature_table = SignatureTable()
        self.pattern_table = PatternTable()
        self.filter = PrefetchFilter(self.ghr)

    def _issue(self, ip, addr, pf_addr, confidence):
        fill_here = confidence >= FILL_THRESHOLD
        request = FilterRequest.SPP_L2C_PREFETCH if fill_here else FilterRequest.SPP_LLC_PREFETCH
        if not self.filter.check(pf_addr, request):
            return
        self.host.prefetch_line(ip, addr, pf_addr, fill_here, 0)
        if fill_here:
            self.ghr.pf_issued += 1
            if self.ghr.pf_issued > GLOBAL_COUNTER_MAX:
                self.ghr.pf_issued >>= 1
                self.ghr.pf_useful >>= 1

    def cache_operate(self, addr, ip, cache_hit, access_type, metadata_in):
        """Learn from the access and prefetch along the predicted delta path."""
        ghr = self.ghr
        page = addr >> LOG2_PAGE_SIZE
        page_offset = (addr >> LOG2_BLOCK_SIZE) & (_OFFSETS_PER_PAGE - 1)
        ghr.global_accuracy = 100 * ghr.pf_useful // ghr.pf_issued if ghr.pf_issued else 0

        update = self.signature_table.read_and_update_sig(page, page_offset, ghr)
        self.filter.check(addr, FilterRequest.L2C_DEMAND)
        if update.last_sig:
            self.pattern_table.update_pattern(update.last_sig, update.delta)

        page_base = addr & ~(PAGE_SIZE - 1)
        base_addr = addr
        curr_sig = update.curr_sig
        lookahead_conf = 100
        depth = 0
        queued = 0
        while queued < self.queue_size:
            match = self.pattern_table.read_pattern(
                curr_sig, lookahead_conf, depth, ghr.global_accuracy
            )
            lookahead_conf, depth = match.lookahead_conf, match.depth
            candidates = list(zip(match.deltas, match.confidences))[: self.queue_size - queued]
            queued += len(candidates)

            for delta, confidence in candidates:
                pf_addr = ((base_addr & ~(BLOCK_SIZE - 1)) + (delta << LOG2_BLOCK_SIZE)) & ADDRESS_MASK
                if pf_addr & ~(PAGE_SIZE - 1) == page_base:
                    self._issue(ip, addr, pf_addr, confidence)
                else:
                    ghr.update_entry(
                        curr_sig, confidence, (pf_addr >> LOG2_BLOCK_SIZE) & _OFFSET_MASK, delta
                    )

            if match.lookahead_way is not None:
                base_addr = (base_addr + (match.lookahead_delta << LOG2_BLOCK_SIZE)) & ADDRESS_MASK
                curr_sig = _advance(curr_sig, match.lookahead_delta)

            if not candidates:
                break
        return metadata_in

    def cache_fill(self, addr, set_index, way, prefetch, evicted_addr, metadata_in):
        """Drop the evicted line from the filter and pass the metadata on."""
        self.filter.check(evicted_addr, FilterRequest.L2C_EVICT)
        return metadata_in