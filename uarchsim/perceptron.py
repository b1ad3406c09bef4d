"""Perceptron branch predictor with speculative and real global history."""

from collections import deque
from dataclasses import dataclass

HISTORY_LENGTH = 24
WEIGHT_BITS = 8
NUM_PERCEPTRONS = 163
THETA = int(1.93 * HISTORY_LENGTH + 14)
NUM_UPDATE_ENTRIES = 100


class Perceptron:
    """A bias and one saturating weight per history bit."""

    def __init__(self, history_length=HISTORY_LENGTH, bits=WEIGHT_BITS):
        self.history_length = history_length
        self.max_weight = (1 << (bits - 1)) - 1
        self.min_weight = -(self.max_weight + 1)
        self.bias = 0
        self.weights = [0] * history_length

    def _bits(self, history):
        return ((history >> i) & 1 for i in range(self.history_length))

    def predict(self, history):
        """Return the dot product of the weights with the history as +/-1 values."""
        return self.bias + sum(
            w if bit else -w for w, bit in zip(self.weights, self._bits(history))
        )

    def _saturate(self, value):
        return max(self.min_weight, min(value, self.max_weight))

    def update(self, result, history):
        """Move the weights toward agreeing with ``result`` under ``history``."""
        step = 1 if result else -1
        self.bias = self._saturate(self.bias + step)
        full = (1 << self.history_length) - 1
        mask = history if result else ~history & full
        self.weights = [
            self._saturate(w + (1 if bit else -1))
            for w, bit in zip(self.weights, self._bits(mask))
        ]


@dataclass(frozen=True)
class PerceptronState:
    """What a prediction needs remembered until its outcome is known."""

    ip: int = 0
    prediction: bool = False
    output: int = 0
    history: int = 0


class PerceptronPredictor:
    """A table of perceptrons indexed by branch address."""

    def __init__(self):
        self.perceptrons = [Perceptron() for _ in range(NUM_PERCEPTRONS)]
        self.state_buffer = deque(maxlen=NUM_UPDATE_ENTRIES)
        self.spec_history = 0
        self.history = 0
        self._mask = (1 << HISTORY_LENGTH) - 1

    def _shift(self, history, bit):
        return ((history << 1) | int(bit)) & self._mask

    def predict(self, ip):
        """Return True if the branch at ``ip`` is predicted taken."""
        output = self.perceptrons[ip % NUM_PERCEPTRONS].predict(self.spec_history)
        prediction = output >= 0
        self.state_buffer.append(
            PerceptronState(ip, prediction, output, self.spec_history)
        )
        self.spec_history = self._shift(self.spec_history, prediction)
        return prediction

    def update(self, ip, taken):
        """Train with the outcome of the oldest pending prediction for ``ip``."""
        position = next(
            (i for i, s in enumerate(self.state_buffer) if s.ip == ip), None
        )
        if position is None:
            return
        state = self.state_buffer[position]
        del self.state_buffer[position]

        taken = bool(taken)
        self.history = self._shift(self.history, taken)
        mispredicted = state.prediction != taken
        if mispredicted:
            self.spec_history = self.history

        if mispredicted or -THETA <= state.output <= THETA:
            self.perceptrons[ip % NUM_PERCEPTRONS].update(taken, state.history)