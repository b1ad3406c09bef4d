from uarchsim.prefetch import NoInstructionPrefetcher, NoPrefetcher


class RecordingHost:
    def __init__(self):
        self.calls = []
        self.current_cycle = 0
        self.virtual_prefetch = False

    def prefetch_line(self, *args):
        self.calls.append(args)
        return True

    def prefetch_code_line(self, pf_addr):
        self.calls.append((pf_addr,))
        return True

    def get_occupancy(self, queue, addr):
        return 0

    def get_size(self, queue, addr):
        return 16


def test_no_prefetcher_passes_metadata_through():
    host = RecordingHost()
    pf = NoPrefetcher(host)
    assert pf.cache_operate(0x1000, 0x400, True, 0, 17) == 17
    assert pf.cache_fill(0x1000, 3, 2, False, 0x2000, 23) == 23
    pf.cycle_operate()
    pf.final_stats()
    assert host.calls == []


def test_no_instruction_prefetcher_passes_metadata_through():
    host = RecordingHost()
    pf = NoInstructionPrefetcher(host)
    pf.branch_operate(0x400, 3, 0x800)
    assert pf.cache_operate(0x400, False, False, 5) == 5
    assert pf.cache_fill(0x400, 1, 1, True, 0x800, 9) == 9
    pf.cycle_operate()
    assert host.calls == []