import os

os.environ.setdefault("MPLBACKEND", "Agg")

import pytest

from csmacdSimpy import Config, Generator


class FixedRandom:
    """Backoff source that always draws the same slot count, clamped to the allowed range."""

    def __init__(self, value=0, uniform=0.5):
        self.value = value
        self.uniform = uniform

    def randint(self, a, b):
        return max(a, min(self.value, b))

    def random(self):
        return self.uniform


class NeverGenerator(Generator):
    def next_event(self, resolution):
        return 10 ** 12


@pytest.fixture
def unit_config():
    # one tick per bit: IFS 96, slot 512, jam 48 ticks
    return Config(psize=2, lspeed=1, resolution=1)
