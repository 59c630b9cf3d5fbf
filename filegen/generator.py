import array
import random
import sys

WORD_SIZE = 4
WORD_BITS = WORD_SIZE * 8


def _constant_bytes(index: int, nwords: int) -> bytes:
    return bytes([index & 0xFF]) * (nwords * WORD_SIZE)


class SequenceGenerator:
    """
    Source of file content words and of every random draw made during a run

    All draws come from one random.Random seeded once, so a verify pass reproduces
    a write pass only if it makes the same calls in the same order.
    """

    def __init__(self, seed: int, randomise: bool = False) -> None:
        self.seed = seed
        self.randomise = randomise
        self._random = random.Random(seed)

    def __repr__(self):
        return f"{self.__class__.__name__}(seed={self.seed}, randomise={self.randomise})"

    def below(self, limit: int) -> int:
        """
        Uniform integer in [0, limit)

        Draws limit.bit_length() bits and redraws while the value is out of range.
        """
        assert limit > 0, limit
        bits = limit.bit_length()
        while True:
            r = self._random.getrandbits(bits)
            if r < limit:
                return r

    def next_word(self, index: int) -> int:
        return int.from_bytes(self.advance(index, 1), sys.byteorder)

    def advance(self, index: int, nwords: int) -> bytes:
        """
        Packed bytes of the next nwords words for file index

        Random words come from a single getrandbits(nwords * 32) call. Its first
        32-bit draw is the least significant word, so little-endian bytes give the
        words in draw order; on big-endian hosts each word is swapped back to
        native order.
        """
        if nwords <= 0:
            return b""
        if not self.randomise:
            return _constant_bytes(index, nwords)
        data = self._random.getrandbits(nwords * WORD_BITS).to_bytes(nwords * WORD_SIZE, "little")
        if sys.byteorder == "big":
            words = array.array("I", data)
            words.byteswap()
            data = words.tobytes()
        return data


def words_for(size: int) -> int:
    return (size + WORD_SIZE - 1) // WORD_SIZE
