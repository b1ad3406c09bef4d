"""Hashed perceptron predictor with geometric history lengths and adaptive threshold."""

NUM_TABLES = 16
MAX_HISTORY = 232
HISTORY_LENGTHS = (0, 3, 4, 6, 8, 10, 14, 19, 26, 36, 49, 67, 91, 125, 170, MAX_HISTORY)
SPEED = 18
LOG_TABLE_SIZE = 12
TABLE_SIZE = 1 << LOG_TABLE_SIZE
TABLE_MASK = TABLE_SIZE - 1
HISTORY_WORDS = MAX_HISTORY // LOG_TABLE_SIZE + 1
INITIAL_THETA = 10
WEIGHT_MAX = 127
WEIGHT_MIN = -128


class HashedPerceptronPredictor:
    """Sums weights chosen from several tables by hashed global history."""

    def __init__(self):
        self.tables = [[0] * TABLE_SIZE for _ in range(NUM_TABLES)]
        self.history_words = [0] * HISTORY_WORDS
        self.indices = [0] * NUM_TABLES
        self.theta = INITIAL_THETA
        self.threshold_counter = 0
        self.output = 0

    def _index(self, ip, length):
        most_words, last_bits = divmod(length, LOG_TABLE_SIZE)
        x = 0
        for word in self.history_words[:most_words]:
            x ^= word
        x ^= self.history_words[most_words] & ((1 << last_bits) - 1)
        x ^= ip
        return x & TABLE_MASK

    def predict(self, ip):
        """Return True if the branch at ``ip`` is predicted taken."""
        self.indices = [self._index(ip, length) for length in HISTORY_LENGTHS]
        self.output = sum(table[i] for table, i in zip(self.tables, self.indices))
        return self.output >= 1

    def _shift_history(self, taken):
        carry = int(taken)
        for i, word in enumerate(self.history_words):
            word = (word << 1) | carry
            carry = int(bool(word & TABLE_SIZE))
            self.history_words[i] = word & TABLE_MASK

    def update(self, ip, taken):
        """Train on the outcome of the branch most recently predicted."""
        taken = bool(taken)
        correct = taken == (self.output >= 1)
        self._shift_history(taken)

        magnitude = abs(self.output)
        if correct and magnitude >= self.theta:
            return

        for table, i in zip(self.tables, self.indices):
            if taken:
                table[i] = min(table[i] + 1, WEIGHT_MAX)
            else:
                table[i] = max(table[i] - 1, WEIGHT_MIN)

        if not correct:
            self.threshold_counter += 1
            if self.threshold_counter >= SPEED:
                self.theta += 1
                self.threshold_counter = 0
        else:
            self.threshold_counter -= 1
            if self.threshold_counter <= -SPEED:
                self.theta -= 1
                self.threshold_counter = 0