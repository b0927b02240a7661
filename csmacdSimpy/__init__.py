from csmacdSimpy.circular_buffer import CircularBuffer
from csmacdSimpy.generators import Deterministic, Generator, GeneratorType, Markov, create_generator
from csmacdSimpy.online_stats import OnlineStats
from csmacdSimpy.CsmaCd import (
    Config,
    EventType,
    Idle,
    InvalidStationState,
    Jamming,
    Lan,
    Medium,
    Packet,
    Sensing,
    SimulationResult,
    Station,
    StationStatistics,
    Transmitting,
    Waiting,
    create_lan,
    run_simulation,
)
