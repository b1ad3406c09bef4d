from uarchsim.bimodal import COUNTER_MAX, PRIME, BimodalPredictor


def test_fresh_predictor_predicts_not_taken():
    assert BimodalPredictor().predict(0x400000) is False


def test_two_taken_updates_flip_prediction():
    p = BimodalPredictor()
    p.update(0x1234, True)
    assert p.predict(0x1234) is False
    p.update(0x1234, True)
    assert p.predict(0x1234) is True


def test_counter_saturates_at_max():
    p = BimodalPredictor()
    for _ in range(10):
        p.update(77, True)
    assert p.table[77 % PRIME] == COUNTER_MAX
    p.update(77, False)
    assert p.predict(77) is True
    p.update(77, False)
    assert p.predict(77) is False


def test_counter_saturates_at_zero():
    p = BimodalPredictor()
    for _ in range(10):
        p.update(5, False)
    assert min(p.table) == 0
    p.update(5, True)
    p.update(5, True)
    assert p.predict(5) is True


def test_addresses_alias_modulo_prime():
    p = BimodalPredictor()
    p.update(10, True)
    p.update(10, True)
    assert p.predict(10 + PRIME) is True
    assert p.predict(11) is False