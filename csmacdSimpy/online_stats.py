import math


class OnlineStats:
    """Running mean and variance (Welford), so samples never have to be stored."""

    def __init__(self):
        self.count = 0
        self._mean = 0.0
        self._m2 = 0.0  # sum of squared distances from the mean

    def add(self, sample: float) -> None:
        self.count += 1
        delta = sample - self._mean
        self._mean += delta / self.count
        self._m2 += delta * (sample - self._mean)

    def mean(self) -> float:
        return self._mean

    def variance(self) -> float:
        if self.count == 0:
            return 0.0
        return self._m2 / self.count

    def stddev(self) -> float:
        return math.sqrt(self.variance())

    def __len__(self):
        return self.count
