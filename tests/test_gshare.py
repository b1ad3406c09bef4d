from uarchsim.gshare import HISTORY_MASK, TABLE_SIZE, GSharePredictor, gshare_hash


def test_fresh_predictor_predicts_taken():
    p = GSharePredictor()
    assert p.predict(0xABCDEF) is True
    assert p.last_prediction is True


def test_hash_of_zero_is_zero():
    assert gshare_hash(0, 0) == 0


def test_hash_small_ip_is_xor_with_history():
    assert gshare_hash(5, 3) == 6


def test_hash_stays_within_table():
    for ip in (0, 1, 0xFFFFFFFFFFFF, 0x7FFF_1234_5678, 2**63 + 17):
        for history in (0, 1, HISTORY_MASK):
            assert 0 <= gshare_hash(ip, history) < TABLE_SIZE


def test_history_records_outcomes_and_is_masked():
    p = GSharePredictor()
    p.update(100, True)
    assert p.history == 1
    p.update(100, False)
    assert p.history == 2
    for _ in range(30):
        p.update(100, True)
    assert p.history == HISTORY_MASK


def test_learns_not_taken_branch():
    p = GSharePredictor()
    for _ in range(20):
        p.update(100, False)
    assert p.history == 0
    assert p.predict(100) is False
    assert p.last_prediction is False


def test_counters_stay_in_range():
    p = GSharePredictor()
    for i in range(200):
        p.update(i % 7, i % 3 == 0)
    assert all(0 <= c <= 3 for c in p.table)