import pytest

from csmacdSimpy import OnlineStats


def test_mean_and_stddev():
    stats = OnlineStats()
    for sample in [2, 4, 4, 4, 5, 5, 7, 9]:
        stats.add(sample)
    assert len(stats) == 8
    assert stats.mean() == pytest.approx(5.0)
    assert stats.variance() == pytest.approx(4.0)
    assert stats.stddev() == pytest.approx(2.0)


def test_empty_accumulator():
    stats = OnlineStats()
    assert stats.mean() == 0.0
    assert stats.stddev() == 0.0
