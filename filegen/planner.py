from filegen.generator import SequenceGenerator

DEFAULT_CHUNK_SIZE = 64 * 1024
# most bytes a single read or write moves on Linux
MAX_CHUNK_SIZE = 0x7FFFF000


def next_chunk_size(generator: SequenceGenerator, remaining: int, threshold: int) -> int:
    """
    Size of the next read or write, in [1, min(remaining, threshold)]

    A file that fits under the threshold is finished in one operation, otherwise a
    size strictly below the threshold is drawn.
    """
    assert remaining > 0, remaining
    assert threshold > 0, threshold
    if remaining <= threshold:
        return remaining
    if threshold == 1:
        return 1
    return 1 + generator.below(threshold - 1)


def next_file_size(generator: SequenceGenerator, remaining: int, max_file_size: int) -> int:
    assert remaining > 0, remaining
    assert max_file_size > 0, max_file_size
    # the last file takes whatever is left so the budget is met exactly
    if max_file_size >= remaining:
        return remaining
    return 1 + generator.below(max_file_size)
