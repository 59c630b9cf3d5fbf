from typing import Optional, Union

from filegen.generator import SequenceGenerator, words_for

Buffer = Union[bytearray, memoryview]


def expected_bytes(generator: SequenceGenerator, size: int, index: int) -> bytes:
    # a trailing partial word contributes its first bytes, the rest is dropped
    return generator.advance(index, words_for(size))[:size]


def fill(generator: SequenceGenerator, buffer: Buffer, index: int) -> None:
    buffer[:] = expected_bytes(generator, len(buffer), index)


def check(generator: SequenceGenerator, buffer: Buffer, index: int) -> bool:
    # the full expected chunk is always generated before comparing
    return bytes(buffer) == expected_bytes(generator, len(buffer), index)


def skip(generator: SequenceGenerator, size: int, index: int) -> None:
    generator.advance(index, words_for(size))


def find_mismatch(actual: Buffer, expected: bytes) -> Optional[int]:
    """Offset of the first differing byte, None if both are equal"""
    actual = bytes(actual)
    if actual == expected:
        return None
    for offset, (a, e) in enumerate(zip(actual, expected)):
        if a != e:
            return offset
    return min(len(actual), len(expected))


def check_chunk(generator: SequenceGenerator, buffer: Buffer, index: int) -> Optional[int]:
    """Like check(), but returns the offset of the first bad byte instead of a bool"""
    return find_mismatch(buffer, expected_bytes(generator, len(buffer), index))
