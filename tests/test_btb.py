import pytest

from uarchsim.btb import DEFAULT_CALL_SIZE, BasicBTB, BranchType, SETS


@pytest.fixture
def btb():
    return BasicBTB()


def test_unknown_branch_has_no_target(btb):
    assert btb.predict(0x4000, BranchType.CONDITIONAL) == (0, True)


def test_taken_branch_is_learned(btb):
    btb.update(0x4000, 0x5000, True, BranchType.CONDITIONAL)
    assert btb.predict(0x4000, BranchType.CONDITIONAL) == (0x5000, True)


def test_not_taken_clears_always_taken(btb):
    btb.update(0x4000, 0x5000, True, BranchType.CONDITIONAL)
    btb.update(0x4000, 0x5000, False, BranchType.CONDITIONAL)
    assert btb.predict(0x4000, BranchType.CONDITIONAL) == (0x5000, False)


def test_not_taken_branch_is_not_allocated(btb):
    btb.update(0x4000, 0x5000, False, BranchType.CONDITIONAL)
    assert btb.predict(0x4000, BranchType.CONDITIONAL) == (0, True)


def test_zero_target_is_not_allocated(btb):
    btb.update(0x4000, 0, True, BranchType.DIRECT_JUMP)
    assert btb.predict(0x4000, BranchType.DIRECT_JUMP) == (0, True)


def test_indirect_target_is_learned(btb):
    btb.update(0x7000, 0x9000, True, BranchType.INDIRECT)
    assert btb.predict(0x7000, BranchType.INDIRECT) == (0x9000, True)


def test_return_uses_default_call_size(btb):
    btb.predict(0x1000, BranchType.DIRECT_CALL)
    assert btb.predict(0x2000, BranchType.RETURN) == (0x1000 + DEFAULT_CALL_SIZE, True)


def test_return_recalibrates_call_size(btb):
    btb.predict(0x1000, BranchType.DIRECT_CALL)
    btb.update(0x2000, 0x1006, True, BranchType.RETURN)
    btb.predict(0x1000, BranchType.DIRECT_CALL)
    assert btb.predict(0x2000, BranchType.RETURN) == (0x1006, True)


def test_far_return_does_not_recalibrate(btb):
    btb.predict(0x1000, BranchType.DIRECT_CALL)
    btb.update(0x2000, 0x1100, True, BranchType.RETURN)
    btb.predict(0x1000, BranchType.DIRECT_CALL)
    assert btb.predict(0x2000, BranchType.RETURN) == (0x1000 + DEFAULT_CALL_SIZE, True)


def test_set_holds_at_most_its_ways(btb):
    ips = [0x100 + k * SETS * 4 for k in range(9)]
    for ip in ips:
        btb.update(ip, ip + 0x40, True, BranchType.CONDITIONAL)
    known = [ip for ip in ips if btb.predict(ip, BranchType.CONDITIONAL)[0] == ip + 0x40]
    assert len(known) <= 8
    assert ips[-1] in known