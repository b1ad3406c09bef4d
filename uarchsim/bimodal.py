"""Bimodal branch predictor built from a table of 2-bit saturating counters."""

TABLE_SIZE = 16384
PRIME = 16381
COUNTER_BITS = 2
COUNTER_MAX = (1 << COUNTER_BITS) - 1
TAKEN_THRESHOLD = 1 << (COUNTER_BITS - 1)


class BimodalPredictor:
    """Predicts a branch from a saturating counter indexed by its address."""

    def __init__(self):
        self.table = [0] * TABLE_SIZE

    @staticmethod
    def _index(ip):
        return ip % PRIME

    def predict(self, ip):
        """Return True if the branch at ``ip`` is predicted taken."""
        return self.table[self._index(ip)] >= TAKEN_THRESHOLD

    def update(self, ip, taken):
        """Train the counter for ``ip`` with the real outcome."""
        index = self._index(ip)
        if taken:
            self.table[index] = min(self.table[index] + 1, COUNTER_MAX)
        else:
            self.table[index] = max(self.table[index] - 1, 0)