import math
import random
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, List, Optional

import numpy as np
import simpy

from csmacdSimpy.circular_buffer import CircularBuffer
from csmacdSimpy.generators import Generator, GeneratorType, create_generator, round_half_up
from csmacdSimpy.logger_util import DEFAULT_LOG_NAME, station_log
from csmacdSimpy.online_stats import OnlineStats


class InvalidStationState(RuntimeError):
    pass


@dataclass()
class Config:
    psize: int = 1  # packet length in bits
    lspeed: int = 1_000_000  # link speed in bits/s
    resolution: float = 1e6  # ticks per second
    persistence: bool = False  # True -> 1-persistent, False -> non-persistent
    queue_limit: Optional[int] = None  # None -> unbounded station queue
    ifs_bits: int = 96  # interframe spacing
    slot_bits: int = 512  # backoff slot
    jam_bits: int = 48  # jam signal
    max_retries: int = 10
    propagation_delay: float = 25.6e-6  # seconds

    def bit_times_to_ticks(self, bits: int) -> int:
        return round_half_up(bits * self.resolution / self.lspeed)

    @property
    def ifs_ticks(self) -> int:
        return max(1, self.bit_times_to_ticks(self.ifs_bits))

    @property
    def slot_ticks(self) -> int:
        return self.bit_times_to_ticks(self.slot_bits)

    @property
    def jam_ticks(self) -> int:
        return max(1, self.bit_times_to_ticks(self.jam_bits))

    @property
    def ticks_per_packet(self) -> float:
        return self.psize / self.lspeed * self.resolution

    @property
    def propagation_delay_ticks(self) -> int:
        # rounding first keeps 25.6e-6 * 1e6 from landing just above 26
        return max(1, math.ceil(round(self.propagation_delay * self.resolution, 9)))


@dataclass(frozen=True)
class Packet:
    time_generated: int  # tick
    length: int  # bits


@dataclass()
class Idle:
    pass


@dataclass()
class Sensing:
    counter: int
    busy_seen: bool
    pkt: Packet


@dataclass()
class Transmitting:
    ticks: int  # ticks already spent on the wire
    pkt: Packet


@dataclass()
class Jamming:
    counter: int  # jam ticks left
    pkt: Packet


@dataclass()
class Waiting:
    counter: int
    wait_ticks: int
    pkt: Packet


class EventType(Enum):
    SUCCESSFUL_TRANSMISSION = 1
    COLLISION = 2
    PACKET_DROPPED = 3


@dataclass()
class StationStatistics:
    generated: int = 0
    processed: int = 0
    dropped: int = 0
    collisions: int = 0
    idle_ticks: int = 0  # ticks spent idle with an empty queue


class Medium:
    """Shared channel: a ring of per-tick activity bitmaps, one bit per station.

    The head slot is the bitmap of the tick in progress. The driver writes it
    before stations step and stations mark their own bit in it while stepping.
    Transmitters check for a collision only after every station has stepped,
    so two stations on the wire in the same tick both see each other. Older
    slots stay in the ring for ``delay`` ticks.
    """

    def __init__(self, n_stations: int, delay: int):
        if n_stations <= 0:
            raise ValueError(f"Medium needs at least one station, got {n_stations}")
        self.n_stations = n_stations
        self.delay = delay
        self.buffer = CircularBuffer(delay, np.zeros(n_stations, dtype=bool))
        self.event_dict = {"time": [], "station_name": [], "event_type": []}

    def write(self, local_state: np.ndarray) -> None:
        if len(local_state) != self.n_stations:
            raise ValueError(
                f"Bitmap length {len(local_state)} does not match station count {self.n_stations}")
        self.buffer.write(local_state)

    def tick(self) -> None:
        self.buffer.advance()

    def head(self) -> np.ndarray:
        return self.buffer.read()

    def is_busy(self, station_id: int) -> bool:
        if not 0 <= station_id < self.n_stations:
            raise IndexError(f"Station id {station_id} out of range [0, {self.n_stations})")
        bitmap = self.buffer.read()
        return np.count_nonzero(bitmap) - int(bitmap[station_id]) > 0

    def add_event(self, time: int, station_name: str, event_type: EventType) -> None:
        self.event_dict["time"].append(time)
        self.event_dict["station_name"].append(station_name)
        self.event_dict["event_type"].append(event_type.name)


class Station:
    def __init__(
            self,
            station_id: int,
            generator: Generator,
            config: Optional[Config] = None,
            rng=None,
            logger_name: str = DEFAULT_LOG_NAME,
    ):
        config = config if config is not None else Config()
        self.id = station_id
        self.name = f"Station {station_id}"
        self.config = config
        self.generator = generator
        self.rng = rng if rng is not None else random  # backoff draws
        self.logger_name = logger_name
        self.queue: Deque[Packet] = deque()
        self.state = Idle()
        self.retries = 0  # collisions or busy senses of the packet in flight
        self.statistics = StationStatistics()
        self.now = 0
        # cached, step() runs once per station per tick
        self.ifs_ticks = config.ifs_ticks
        self.slot_ticks = config.slot_ticks
        self.jam_ticks = config.jam_ticks
        self.lspeed = config.lspeed
        self.resolution = config.resolution
        self.ticker = generator.next_event(config.resolution)  # ticks until the next arrival

    def generate_packets(self, now: int) -> None:
        if self.ticker > 0:
            self.ticker -= 1
            if self.ticker > 0:
                return
        self.statistics.generated += 1
        self.ticker = self.generator.next_event(self.config.resolution)
        if self.config.queue_limit is not None and len(self.queue) >= self.config.queue_limit:
            station_log(self, "Queue full, dropping new packet")
            self.statistics.dropped += 1
            return
        self.queue.append(Packet(now, self.config.psize))

    def carrier(self, local_state: np.ndarray) -> None:
        # first pass of a tick: stations already on the wire announce themselves
        state = self.state
        if isinstance(state, Transmitting) or (isinstance(state, Jamming) and state.counter > 1):
            local_state[self.id] = True

    def step(self, medium: Medium, local_state: np.ndarray, now: int) -> None:
        self.now = now
        self.generate_packets(now)
        while True:
            state = self.state
            if isinstance(state, Idle):
                if not self.queue:
                    self.statistics.idle_ticks += 1
                    return
                self.retries = 0
                self.state = Sensing(0, False, self.queue.popleft())

            elif isinstance(state, Sensing):
                if state.counter < self.ifs_ticks:
                    state.busy_seen = state.busy_seen or medium.is_busy(self.id)
                    state.counter += 1
                    return
                if not state.busy_seen:
                    station_log(self, f"Medium idle, starting transmission of {state.pkt.length} bits")
                    self.state = Transmitting(0, state.pkt)
                elif self.back_off(state.pkt, medium, persistent=self.config.persistence):
                    return

            elif isinstance(state, Transmitting):
                # collision check and completion wait for resolve()
                local_state[self.id] = True
                return

            elif isinstance(state, Jamming):
                state.counter -= 1
                if state.counter > 0:
                    local_state[self.id] = True
                    return
                if self.back_off(state.pkt, medium):
                    return

            elif isinstance(state, Waiting):
                if state.counter < state.wait_ticks:
                    state.counter += 1
                    return
                self.state = Sensing(0, False, state.pkt)

            else:
                raise InvalidStationState(f"{self.name} in unknown state {state!r}")

    def resolve(self, medium: Medium, now: int) -> Optional[Packet]:
        """Last pass of a tick, once every station has marked its bit in the head bitmap."""
        state = self.state
        if not isinstance(state, Transmitting):
            return None
        if medium.is_busy(self.id):
            station_log(self, "Collision detected, jamming")
            self.statistics.collisions += 1
            medium.add_event(now, self.name, EventType.COLLISION)
            self.state = Jamming(self.jam_ticks, state.pkt)
            return None
        state.ticks += 1
        # ticks * lspeed / resolution bits are on the wire, compared without dividing
        if state.ticks * self.lspeed >= state.pkt.length * self.resolution:
            station_log(self, "Transmission finished")
            self.statistics.processed += 1
            medium.add_event(now, self.name, EventType.SUCCESSFUL_TRANSMISSION)
            self.state = Idle()
            return state.pkt
        return None

    def back_off(self, pkt: Packet, medium: Medium, persistent: bool = False) -> bool:
        """Count a failed attempt; return False when the packet was dropped instead of deferred."""
        self.retries += 1
        if self.retries > self.config.max_retries:
            station_log(self, f"Retry limit {self.config.max_retries} exceeded, dropping packet")
            self.statistics.dropped += 1
            medium.add_event(self.now, self.name, EventType.PACKET_DROPPED)
            self.state = Idle()
            return False
        if persistent:
            wait_ticks = 0
        else:
            wait_ticks = self.rng.randint(0, 2 ** self.retries - 1) * self.slot_ticks
        station_log(self, f"Backing off {wait_ticks} ticks (retry {self.retries})")
        self.state = Waiting(0, wait_ticks, pkt)
        return True

    def in_flight(self) -> Optional[Packet]:
        return getattr(self.state, 'pkt', None)

    def pending(self) -> int:
        return len(self.queue) + (0 if self.in_flight() is None else 1)

    def __repr__(self) -> str:
        return f'{self.name}: state={self.state!r}, queued={len(self.queue)}, retries={self.retries}'


class Lan:
    """Tick driver: one simpy process steps every station and the medium once per tick."""

    def __init__(self, env: simpy.Environment, stations: List[Station], medium: Medium, resolution: float):
        self.env = env
        self.stations = stations
        self.medium = medium
        self.resolution = resolution
        self.sojourn = OnlineStats()
        self.process = env.process(self.start())

    def start(self):
        while True:
            self.tick(self.env.now)
            yield self.env.timeout(1)

    def tick(self, now: int) -> None:
        local_state = np.zeros(self.medium.n_stations, dtype=bool)
        for station in self.stations:
            station.carrier(local_state)
        # the head holds local_state itself, later marks show up in is_busy
        self.medium.write(local_state)
        for station in self.stations:
            station.step(self.medium, local_state, now)
        finished = []
        for station in self.stations:
            packet = station.resolve(self.medium, now)
            if packet is not None:
                finished.append(packet)
        self.medium.tick()
        for packet in finished:
            self.sojourn.add((now - packet.time_generated) / self.resolution)

    def run(self, ticks: int) -> None:
        if ticks > self.env.now:
            self.env.run(until=ticks)

    def total(self, statistic: str) -> int:
        return sum(getattr(station.statistics, statistic) for station in self.stations)


@dataclass()
class SimulationResult:
    mean_sojourn: float
    stddev_sojourn: float
    generated: int
    processed: int
    dropped: int
    collisions: int
    pending: int
    ticks: int
    event_dict: dict = field(default_factory=dict)


def create_lan(
        station_count: int,
        rate: float,
        config: Config,
        generator_type: GeneratorType = GeneratorType.MARKOV,
        rng=None,
        logger_name: str = DEFAULT_LOG_NAME,
) -> Lan:
    env = simpy.Environment()
    medium = Medium(station_count, config.propagation_delay_ticks)
    stations = [
        Station(i, create_generator(generator_type, rate, rng=rng), config, rng=rng, logger_name=logger_name)
        for i in range(station_count)
    ]
    return Lan(env, stations, medium, config.resolution)


def run_simulation(
        station_count: int,
        rate: float,
        duration: float,
        config: Optional[Config] = None,
        generator_type: GeneratorType = GeneratorType.MARKOV,
        seed: Optional[int] = None,
        rng=None,
        logger_name: str = DEFAULT_LOG_NAME,
) -> SimulationResult:
    config = config if config is not None else Config()
    if rng is None and seed is not None:
        rng = random.Random(seed)
    lan = create_lan(station_count, rate, config, generator_type, rng=rng, logger_name=logger_name)
    ticks = round_half_up(duration * config.resolution)
    lan.run(ticks)
    return SimulationResult(
        mean_sojourn=lan.sojourn.mean(),
        stddev_sojourn=lan.sojourn.stddev(),
        generated=lan.total("generated"),
        processed=lan.total("processed"),
        dropped=lan.total("dropped"),
        collisions=lan.total("collisions"),
        pending=sum(station.pending() for station in lan.stations),
        ticks=ticks,
        event_dict=lan.medium.event_dict,
    )
