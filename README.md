# uarchsim

Building blocks for trace-driven CPU microarchitecture simulation: branch
direction predictors, a branch target buffer with a return address stack, and
a family of cache prefetchers. Each component keeps its own state, so you can
create one instance for every simulated core or cache.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Branch direction predictors

| Module | Class |
| --- | --- |
| `uarchsim.bimodal` | `BimodalPredictor`: 16384 two-bit saturating counters, indexed by `ip % 16381` |
| `uarchsim.gshare` | `GSharePredictor`: two-bit counters indexed by `gshare_hash(ip, history)` with 14 bits of global history |
| `uarchsim.hashed_perceptron` | `HashedPerceptronPredictor`: 16 weight tables with geometric history lengths and a threshold that adapts |
| `uarchsim.perceptron` | `PerceptronPredictor`, built from `Perceptron` and `PerceptronState` |

All predictors have the same two methods:

```python
from uarchsim.gshare import GSharePredictor

predictor = GSharePredictor()
guess = predictor.predict(0x401000)   # True means "taken"
predictor.update(0x401000, True)      # train with the real outcome
```

`HashedPerceptronPredictor.update` trains on the branch that was predicted
most recently. `PerceptronPredictor` stores the state of up to 100 pending
predictions. Its `update` uses the oldest pending prediction for that `ip`,
and does nothing if no such prediction is pending. On a misprediction it
restores the speculative history from the real history.

## Branch target buffer

`uarchsim.btb.BasicBTB` is an 8-way, 1024-set BTB with LRU replacement. It
also has two helper structures:

- An indirect target table, indexed by the address XORed with the history of
  conditional branches.
- A 64-entry return address stack. This stack learns the size of each call
  instruction, from 0 up to 10 bytes, and starts from a default of 4.

```python
from uarchsim.btb import BasicBTB, BranchType

btb = BasicBTB()
btb.update(0x1000, 0x2000, True, BranchType.DIRECT_JUMP)
target, always_taken = btb.predict(0x1000, BranchType.DIRECT_JUMP)  # (0x2000, True)
```

If `predict` finds no entry for a branch, it returns `(0, True)`.

## Prefetchers

A data prefetcher is built around a host cache. The host must provide what
the `uarchsim.prefetch.CacheHost` protocol describes:

- the attributes `current_cycle` and `virtual_prefetch`
- `prefetch_line(ip, base_addr, pf_addr, fill_this_level, metadata)`, which returns whether the request was accepted
- `get_occupancy(queue, addr)`
- `get_size(queue, addr)`

An instruction prefetcher is built around an `InstructionHost`. That host
provides `prefetch_code_line(pf_addr)`.

| Module | Class |
| --- | --- |
| `uarchsim.prefetch` | `Prefetcher`, `InstructionPrefetcher`, `NoPrefetcher`, `NoInstructionPrefetcher` |
| `uarchsim.next_line` | `NextLinePrefetcher`, `NextLineInstructionPrefetcher` |
| `uarchsim.ip_stride` | `IPStridePrefetcher`: detects a repeated stride for each IP and streams 3 prefetches ahead, one per `cycle_operate()` |
| `uarchsim.va_ampm_lite` | `VaAmpmLitePrefetcher`: keeps access and prefetch bitmaps for 128 pages and matches strides in both directions |
| `uarchsim.spp` | `SPPPrefetcher`: signature path prefetcher with lookahead, a prefetch filter and a global history register |

Data prefetchers provide these hooks:

- `cache_operate(addr, ip, cache_hit, access_type, metadata_in)`
- `cache_fill(addr, set_index, way, prefetch, evicted_addr, metadata_in)`
- `cycle_operate()`
- `final_stats()`

Both metadata hooks return the metadata to pass on. Instruction prefetchers
have the matching hooks, plus `branch_operate(ip, branch_type, branch_target)`.
The base classes tally each hook call in `events`, and `final_stats()` returns
that tally as a dict. A hook that a subclass overrides is not counted.

```python
from uarchsim.next_line import NextLinePrefetcher

class Host:
    current_cycle = 0
    virtual_prefetch = False

    def __init__(self):
        self.issued = []

    def prefetch_line(self, ip, base_addr, pf_addr, fill_this_level, metadata):
        self.issued.append(pf_addr)
        return True

    def get_occupancy(self, queue, addr):
        return 0

    def get_size(self, queue, addr):
        return 16

host = Host()
NextLinePrefetcher(host).cache_operate(0x1000, 0x400, False, 0, 0)
assert host.issued == [0x1040]
```

Block size (`BLOCK_SIZE`, 64 bytes), page size (`PAGE_SIZE`, 4096 bytes) and
the fill levels (`FILL_L1`, `FILL_L2`, `FILL_LLC`) are constants in
`uarchsim.prefetch`.

### Parts of the signature path prefetcher

Each part of `uarchsim.spp` can also be used on its own:

- `SignatureTable.read_and_update_sig(page, page_offset, ghr)` returns a `SignatureUpdate`.
- `PatternTable.update_pattern(last_sig, curr_delta)` updates the pattern counts.
- `PatternTable.read_pattern(curr_sig, lookahead_conf, depth, global_accuracy)` returns a `PatternMatch`.
- `PrefetchFilter.check(check_addr, filter_request)` takes a `FilterRequest`.
- `GlobalRegister.update_entry(...)` and `GlobalRegister.check_entry(page_offset)` maintain the global history register.
- `get_hash(key)` and `sig_delta_of(delta)` are helper functions.

`SPPPrefetcher(host, queue_size=32)` limits how many candidates a single
access can produce.

## What this package does not include

The package contains only the predictor and prefetcher components. It has no
core pipeline, no cache or memory model, no trace reader and no command-line
simulator. To drive the components, you write the host objects and the
simulation loop yourself.