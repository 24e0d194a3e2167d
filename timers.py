"""Delay and sound timer driver."""

import machine


class Timers:
    """Counts the delay and sound timers down toward zero at 60Hz.

    Time is measured in executed instructions so that runs are repeatable:
    after n instructions at instructions_per_second, n * FREQUENCY //
    instructions_per_second ticks have fallen due.
    """

    FREQUENCY = 60  # type: int

    def __init__(self, state: machine.MachineState,
                 instructions_per_second: int = 500):
        if instructions_per_second <= 0:
            raise ValueError(
                "Invalid instruction rate: %d" % instructions_per_second)
        self.state = state  # type: machine.MachineState
        self.instructions_per_second = instructions_per_second  # type: int

        self.instructions = 0  # type: int
        self.ticks = 0  # type: int
        self._scheduled = 0  # type: int

    @property
    def sound_active(self) -> bool:
        return self.state.sound_timer > 0

    def tick(self) -> None:
        if self.state.delay_timer > 0:
            self.state.delay_timer -= 1
        if self.state.sound_timer > 0:
            self.state.sound_timer -= 1
        self.ticks += 1

    def advance(self, instructions: int = 1) -> int:
        """Account for executed instructions; returns number of ticks run."""
        self.instructions += instructions
        scheduled = (self.instructions * self.FREQUENCY //
                     self.instructions_per_second)
        due = scheduled - self._scheduled
        self._scheduled = scheduled
        for _ in range(due):
            self.tick()
        return due
