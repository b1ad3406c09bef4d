from uarchsim.next_line import NextLineInstructionPrefetcher, NextLinePrefetcher
from uarchsim.prefetch import BLOCK_SIZE


class RecordingHost:
    def __init__(self):
        self.calls = []
        self.code_calls = []

    def prefetch_line(self, *args):
        self.calls.append(args)
        return True

    def prefetch_code_line(self, pf_addr):
        self.code_calls.append(pf_addr)
        return True


def test_data_prefetch_of_next_line():
    host = RecordingHost()
    pf = NextLinePrefetcher(host)
    assert pf.cache_operate(0x1000, 0x400, False, 0, 7) == 7
    assert host.calls == [(0x400, 0x1000, 0x1000 + BLOCK_SIZE, True, 0)]


def test_each_access_prefetches_once():
    host = RecordingHost()
    pf = NextLinePrefetcher(host)
    for addr in (0x0, 0x40, 0x80):
        pf.cache_operate(addr, 0, True, 0, 0)
    assert [c[2] for c in host.calls] == [a + BLOCK_SIZE for a in (0x0, 0x40, 0x80)]


def test_instruction_prefetch_of_next_line():
    host = RecordingHost()
    pf = NextLineInstructionPrefetcher(host)
    assert pf.cache_operate(0x2000, True, False, 3) == 3
    assert host.code_calls == [0x2000 + BLOCK_SIZE]