import math
import random
from abc import ABC, abstractmethod
from enum import Enum


def round_half_up(value: float) -> int:
    # built-in round() sends halves to the even neighbour
    return int(math.floor(value + 0.5))


class GeneratorType(Enum):
    MARKOV = 1
    DETERMINISTIC = 2


class Generator(ABC):
    """Source of packet arrivals, answering how many ticks remain until the next one."""

    @abstractmethod
    def next_event(self, resolution: float) -> int:
        pass


class Deterministic(Generator):
    def __init__(self, mean: float):
        self.mean = mean  # seconds between arrivals

    def next_event(self, resolution: float) -> int:
        return round_half_up(self.mean * resolution)

    def __repr__(self) -> str:
        return f'Deterministic(mean={self.mean})'


class Markov(Generator):
    """Poisson arrivals: exponentially distributed inter-arrival times.

    The returned delay may be zero, the station ticker copes with that.
    """

    def __init__(self, rate: float, rng=None):
        if rate <= 0:
            raise ValueError(f"Arrival rate must be positive, got {rate}")
        self.rate = rate  # packets per second
        self.rng = rng if rng is not None else random

    def next_event(self, resolution: float) -> int:
        u = 1.0 - self.rng.random()  # uniform in (0, 1]
        return round_half_up(-math.log(u) / self.rate * resolution)

    def __repr__(self) -> str:
        return f'Markov(rate={self.rate})'


def create_generator(generator_type: GeneratorType, rate: float, rng=None) -> Generator:
    if generator_type == GeneratorType.MARKOV:
        return Markov(rate, rng=rng)
    elif generator_type == GeneratorType.DETERMINISTIC:
        return Deterministic(1.0 / rate)
    raise RuntimeError(f'Not supported GeneratorType {generator_type}')
