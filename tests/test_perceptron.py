from uarchsim.perceptron import (
    NUM_PERCEPTRONS,
    NUM_UPDATE_ENTRIES,
    Perceptron,
    PerceptronPredictor,
    PerceptronState,
)


def test_perceptron_weight_bounds_for_eight_bits():
    p = Perceptron(24, 8)
    assert p.max_weight == 127
    assert p.min_weight == -128


def test_fresh_perceptron_outputs_zero():
    assert Perceptron().predict(0b1011) == 0


def test_perceptron_update_agrees_with_history():
    p = Perceptron()
    history = 0b1010_0110
    p.update(True, history)
    assert p.bias == 1
    assert p.predict(history) == p.history_length + 1
    assert p.predict(~history & ((1 << p.history_length) - 1)) == 1 - p.history_length


def test_perceptron_saturates():
    p = Perceptron()
    for _ in range(300):
        p.update(True, (1 << p.history_length) - 1)
    assert p.bias == p.max_weight
    assert all(w == p.max_weight for w in p.weights)
    for _ in range(600):
        p.update(False, (1 << p.history_length) - 1)
    assert p.bias == p.min_weight
    assert all(w == p.min_weight for w in p.weights)


def test_fresh_predictor_predicts_taken_and_records_state():
    pred = PerceptronPredictor()
    assert pred.predict(0x400) is True
    assert list(pred.state_buffer) == [PerceptronState(0x400, True, 0, 0)]
    assert pred.spec_history == 1


def test_update_without_state_changes_nothing():
    pred = PerceptronPredictor()
    pred.update(0x999, True)
    assert pred.history == 0
    assert all(p.bias == 0 for p in pred.perceptrons)


def test_learns_not_taken_branch():
    pred = PerceptronPredictor()
    for _ in range(3):
        pred.predict(0x40)
        pred.update(0x40, False)
    assert pred.predict(0x40) is False


def test_misprediction_restores_speculative_history():
    pred = PerceptronPredictor()
    pred.predict(0x40)
    pred.predict(0x80)
    pred.update(0x40, False)
    assert pred.spec_history == pred.history
    assert len(pred.state_buffer) == 1


def test_state_buffer_is_bounded():
    pred = PerceptronPredictor()
    for ip in range(NUM_UPDATE_ENTRIES + 50):
        pred.predict(ip)
    assert len(pred.state_buffer) == NUM_UPDATE_ENTRIES
    assert pred.state_buffer[0].ip == 50
    assert len(pred.perceptrons) == NUM_PERCEPTRONS