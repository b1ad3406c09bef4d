"""Gshare branch predictor: global history XORed with the branch address."""

HISTORY_LENGTH = 14
HISTORY_MASK = (1 << HISTORY_LENGTH) - 1
TABLE_SIZE = 16384
COUNTER_INIT = 2
COUNTER_MAX = 3


def gshare_hash(ip, history):
    """Return the table index for ``ip`` under global ``history``."""
    value = ip ^ (ip >> HISTORY_LENGTH) ^ (ip >> (HISTORY_LENGTH * 2)) ^ history
    return value % TABLE_SIZE


class GSharePredictor:
    """Two-bit counters indexed by a hash of address and global history."""

    def __init__(self):
        self.history = 0
        self.last_prediction = False
        self.table = [COUNTER_INIT] * TABLE_SIZE

    def predict(self, ip):
        """Return True if the branch at ``ip`` is predicted taken."""
        prediction = self.table[gshare_hash(ip, self.history)] >= 2
        self.last_prediction = prediction
        return prediction

    def update(self, ip, taken):
        """Train the selected counter and shift the outcome into the history."""
        taken = bool(taken)
        index = gshare_hash(ip, self.history)
        if taken:
            self.table[index] = min(self.table[index] + 1, COUNTER_MAX)
        else:
            self.table[index] = max(self.table[index] - 1, 0)
        self.history = ((self.history << 1) & HISTORY_MASK) | int(taken)