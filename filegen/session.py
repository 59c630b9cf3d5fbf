import dataclasses
import enum
import errno
import os
import time
from typing import List

from loguru import logger

from filegen import codec
from filegen.config import RunConfig
from filegen.generator import SequenceGenerator
from filegen.planner import next_chunk_size


class WriteError(OSError):
    pass


class FailureKind(enum.Enum):
    OPEN_FAILED = "cannot open"
    READ_ERROR = "read error"
    TRUNCATED = "file truncated"
    SHORT_READ = "short read"
    CORRUPT = "file corrupt"
    TOO_LONG = "file longer than expected"


@dataclasses.dataclass(frozen=True)
class FileSpec:
    index: int
    path: str
    size: int


@dataclasses.dataclass(frozen=True)
class Failure:
    kind: FailureKind
    offset: int
    detail: str = ""

    def __str__(self):
        msg = f"{self.kind.value} at offset {self.offset}"
        return f"{msg}: {self.detail}" if self.detail else msg


@dataclasses.dataclass
class FileResult:
    spec: FileSpec
    failures: List[Failure] = dataclasses.field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def fail(self, kind: FailureKind, offset: int, detail: str = "") -> None:
        failure = Failure(kind, offset, detail)
        logger.warning(f"{self.spec.path}: {failure}")
        self.failures.append(failure)


def skip_content(config: RunConfig, generator: SequenceGenerator, index: int, size: int) -> None:
    """
    Consume the draws a write of size bytes would have made, without any I/O

    Chunk sizes are drawn too, so the generator ends up exactly where a full
    write or verify of the same file would leave it.
    """
    remaining = size
    while remaining > 0:
        chunk = next_chunk_size(generator, remaining, config.chunk_size)
        codec.skip(generator, chunk, index)
        remaining -= chunk


def write_file(config: RunConfig, spec: FileSpec, generator: SequenceGenerator) -> None:
    try:
        buffer = bytearray(min(config.chunk_size, spec.size))
    except MemoryError as ex:
        raise WriteError(errno.ENOMEM, os.strerror(errno.ENOMEM), spec.path) from ex

    try:
        fd = os.open(spec.path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
    except OSError as ex:
        raise WriteError(ex.errno, ex.strerror, spec.path) from ex

    try:
        remaining = spec.size
        while remaining > 0:
            chunk = next_chunk_size(generator, remaining, config.chunk_size)
            view = memoryview(buffer)[:chunk]
            codec.fill(generator, view, spec.index)
            try:
                written = os.write(fd, view)
            except OSError as ex:
                raise WriteError(ex.errno, ex.strerror, spec.path) from ex
            if written != chunk:
                raise WriteError(
                    errno.EIO, f"short write, {written} of {chunk} bytes", spec.path
                )
            remaining -= chunk
            logger.debug(f"{spec.path}: wrote {chunk} bytes, {remaining} left")
            if config.interval:
                time.sleep(config.interval)

        if config.fsync:
            try:
                os.fsync(fd)
            except OSError as ex:
                raise WriteError(ex.errno, ex.strerror, spec.path) from ex
    finally:
        os.close(fd)


def verify_file(config: RunConfig, spec: FileSpec, generator: SequenceGenerator) -> FileResult:
    result = FileResult(spec)
    try:
        fd = os.open(spec.path, os.O_RDONLY)
    except OSError as ex:
        result.fail(FailureKind.OPEN_FAILED, 0, ex.strerror or str(ex))
        skip_content(config, generator, spec.index, spec.size)
        return result

    try:
        offset = 0
        remaining = spec.size
        while remaining > 0:
            chunk = next_chunk_size(generator, remaining, config.chunk_size)
            try:
                data = os.read(fd, chunk)
            except OSError as ex:
                result.fail(FailureKind.READ_ERROR, offset, ex.strerror or str(ex))
                data = None

            if data is not None and len(data) != chunk:
                kind = FailureKind.SHORT_READ if data else FailureKind.TRUNCATED
                result.fail(kind, offset + len(data), f"read {len(data)} of {chunk} bytes")
            if data is None or len(data) != chunk:
                # nothing more can be trusted, keep the generator in step and stop
                codec.skip(generator, chunk, spec.index)
                skip_content(config, generator, spec.index, remaining - chunk)
                return result

            bad = codec.check_chunk(generator, data, spec.index)
            if bad is not None:
                result.fail(FailureKind.CORRUPT, offset + bad)
            offset += chunk
            remaining -= chunk
            logger.debug(f"{spec.path}: checked {chunk} bytes, {remaining} left")

        try:
            extra = os.read(fd, 1)
        except OSError as ex:
            result.fail(FailureKind.READ_ERROR, spec.size, ex.strerror or str(ex))
        else:
            if extra:
                result.fail(FailureKind.TOO_LONG, spec.size)
    finally:
        os.close(fd)
    return result
