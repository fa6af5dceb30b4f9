"""Stub collaborators and a machine factory for the Chip-8 tests."""

import random

import pytest

from chip8 import Chip8


class RecordingRenderer:
    def __init__(self):
        self.clears = 0
        self.frames = []

    def clear(self):
        self.clears += 1

    def draw(self, grid):
        self.frames.append(list(grid))


class ScriptedInput:
    """Keys in `down` read as held. block_for_key hands out `queue` in order,
    then None."""

    def __init__(self):
        self.down = set()
        self.queue = []
        self.polled = []

    def block_for_key(self):
        if self.queue:
            return self.queue.pop(0)
        return None

    def is_key_down(self, key):
        self.polled.append(key)
        return key in self.down


class RecordingBeeper:
    def __init__(self):
        self.events = []

    def start_tone(self):
        self.events.append("on")

    def stop_tone(self):
        self.events.append("off")


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_machine(clock):
    def make(program=b""):
        machine = Chip8(RecordingRenderer(), ScriptedInput(), RecordingBeeper(),
                        clock=clock, rng=random.Random(1234))
        machine.load(program)
        return machine
    return make
