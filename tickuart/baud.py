class BaudTickGenerator:
    """
    Divide-by-n counter which asserts once every ``ticks_per_bit`` active
    ticks. The counter is held at zero while inactive, so the first edge
    always lands a whole period after activation.
    """
    def __init__(self, ticks_per_bit):
        if ticks_per_bit < 1:
            raise ValueError(f"ticks_per_bit must be at least 1, not "
                             f"{ticks_per_bit}")
        self.ticks_per_bit = ticks_per_bit
        self.counter = 0

    def advance(self, active, divisor=None):
        """Call once per tick. Returns True on the tick of a baud edge.

        ``divisor`` overrides ``ticks_per_bit`` for this call only; the
        receiver uses it to place its first edge half a period in.
        """
        if not active:
            self.counter = 0
            return False

        if divisor is None:
            divisor = self.ticks_per_bit

        if self.counter == divisor - 1:
            self.counter = 0
            return True

        self.counter += 1
        return False

    def reset(self):
        self.counter = 0
