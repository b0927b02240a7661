import copy


class CircularBuffer:
    def __init__(self, size: int, default=None):
        if size <= 0:
            raise ValueError(f"Circular buffer size must be positive, got {size}")
        self.slots = [copy.copy(default) for _ in range(size)]  # every slot gets its own copy
        self.idx = 0  # head

    def __len__(self):
        return len(self.slots)

    def read(self):
        return self.slots[self.idx]

    def write(self, value) -> None:
        self.slots[self.idx] = value

    def advance(self) -> None:
        self.idx = (self.idx + 1) % len(self.slots)

    def __repr__(self) -> str:
        return f'CircularBuffer(size={len(self.slots)}, head={self.idx})'
