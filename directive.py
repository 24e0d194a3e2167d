"""Control-flow directive returned by every opcode."""

import enum


class Action(enum.Enum):
    ADVANCE = 0
    SKIP = 1
    JUMP = 2


class Directive:
    """How the program counter moves after an instruction executes."""

    INSTRUCTION_WIDTH = 2

    def __init__(self, action: Action, address: int = None):
        if (action == Action.JUMP) != (address is not None):
            raise ValueError(
                "Only %s carries an address: %s, %r" % (
                    Action.JUMP.name, action.name, address))
        self.action = action  # type: Action
        self.address = address  # type: int

    def __repr__(self):
        if self.action == Action.JUMP:
            return "Directive(%s, %04x)" % (self.action.name, self.address)
        return "Directive(%s)" % self.action.name

    def __eq__(self, other):
        if not isinstance(other, Directive):
            return False
        return self.action == other.action and self.address == other.address

    def __hash__(self):
        return hash((self.action, self.address))

    def next_pc(self, pc: int) -> int:
        if self.action == Action.ADVANCE:
            return pc + self.INSTRUCTION_WIDTH
        if self.action == Action.SKIP:
            return pc + 2 * self.INSTRUCTION_WIDTH
        return self.address


ADVANCE = Directive(Action.ADVANCE)
SKIP = Directive(Action.SKIP)


def jump(address: int) -> Directive:
    return Directive(Action.JUMP, address)


def skip_if(condition: bool) -> Directive:
    return SKIP if condition else ADVANCE
