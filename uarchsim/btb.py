"""Set-associative branch target buffer with an indirect table and a return address stack."""

from dataclasses import dataclass
from enum import IntEnum

SETS = 1024
WAYS = 8
INDIRECT_SIZE = 4096
RAS_SIZE = 64
CALL_SIZE_TRACKERS = 1024
DEFAULT_CALL_SIZE = 4
MAX_CALL_SIZE = 10
_MASK64 = (1 << 64) - 1


class BranchType(IntEnum):
    """Kinds of branch the BTB distinguishes."""

    NOT_BRANCH = 0
    DIRECT_JUMP = 1
    INDIRECT = 2
    CONDITIONAL = 3
    DIRECT_CALL = 4
    INDIRECT_CALL = 5
    RETURN = 6
    OTHER = 7


@dataclass
class BTBEntry:
    """One way of a BTB set."""

    ip_tag: int = 0
    target: int = 0
    always_taken: bool = False
    lru: int = 0


def _set_index(ip):
    return (ip >> 2) & (SETS - 1)


def _call_size_index(ip):
    return ip & (CALL_SIZE_TRACKERS - 1)


class BasicBTB:
    """Predicts branch targets; returns use a RAS, indirect branches a hashed table."""

    def __init__(self):
        self.sets = [[BTBEntry() for _ in range(WAYS)] for _ in range(SETS)]
        self.lru_counter = 0
        self.indirect = [0] * INDIRECT_SIZE
        self.conditional_history = 0
        self.ras = [0] * RAS_SIZE
        self.ras_index = 0
        self.call_sizes = [DEFAULT_CALL_SIZE] * CALL_SIZE_TRACKERS

    def _find(self, ip):
        return next((e for e in self.sets[_set_index(ip)] if e.ip_tag == ip), None)

    def _lru_victim(self, ip):
        ways = self.sets[_set_index(ip)]
        victim = ways[0]
        for entry in ways:
            if entry.lru < victim.lru:
                victim = entry
        return victim

    def _touch(self, entry):
        entry.lru = self.lru_counter
        self.lru_counter += 1

    def _indirect_index(self, ip):
        return ((ip >> 2) ^ self.conditional_history) & (INDIRECT_SIZE - 1)

    def _push_ras(self, ip):
        self.ras_index = (self.ras_index + 1) % RAS_SIZE
        self.ras[self.ras_index] = ip

    def _pop_ras(self):
        target = self.ras[self.ras_index]
        self.ras[self.ras_index] = 0
        self.ras_index = (self.ras_index - 1) % RAS_SIZE
        return target

    def predict(self, ip, branch_type):
        """Return ``(target, always_taken)`` predicted for the branch at ``ip``."""
        always_taken = branch_type != BranchType.CONDITIONAL
        if branch_type in (BranchType.DIRECT_CALL, BranchType.INDIRECT_CALL):
            self._push_ras(ip)

        if branch_type == BranchType.RETURN:
            call_ip = self.ras[self.ras_index]
            target = (call_ip + self.call_sizes[_call_size_index(call_ip)]) & _MASK64
            return target, always_taken
        if branch_type in (BranchType.INDIRECT, BranchType.INDIRECT_CALL):
            return self.indirect[self._indirect_index(ip)], always_taken

        entry = self._find(ip)
        if entry is None:
            return 0, True
        self._touch(entry)
        return entry.target, entry.always_taken

    def update(self, ip, branch_target, taken, branch_type):
        """Learn the resolved target and direction of the branch at ``ip``."""
        taken = bool(taken)
        indirect = branch_type in (BranchType.INDIRECT, BranchType.INDIRECT_CALL)
        if indirect:
            self.indirect[self._indirect_index(ip)] = branch_target
        if branch_type == BranchType.CONDITIONAL:
            self.conditional_history = ((self.conditional_history << 1) | int(taken)) & _MASK64

        if branch_type == BranchType.RETURN:
            call_ip = self._pop_ras()
            size = abs(call_ip - branch_target)
            if size <= MAX_CALL_SIZE:
                self.call_sizes[_call_size_index(call_ip)] = size
        elif not indirect:
            entry = self._find(ip)
            if entry is None:
                if branch_target != 0 and taken:
                    victim = self._lru_victim(ip)
                    victim.ip_tag = ip
                    victim.target = branch_target
                    victim.always_taken = True
                    self._touch(victim)
            else:
                entry.target = branch_target
                if not taken:
                    entry.always_taken = False