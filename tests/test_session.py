import errno
import os

import pytest

from filegen import session
from filegen.generator import SequenceGenerator
from filegen.session import FailureKind, FileSpec, WriteError, verify_file, write_file


def write_then_verify(config, size, mutate=None):
    spec = FileSpec(0, config.file_path(0), size)
    writer = SequenceGenerator(config.seed, config.randomise)
    write_file(config, spec, writer)
    if mutate:
        mutate(spec.path)
    reader = SequenceGenerator(config.seed, config.randomise)
    result = verify_file(config, spec, reader)
    # the reader must end up where the writer did, whatever happened to the file
    assert reader.advance(0, 8) == writer.advance(0, 8)
    assert reader.below(1 << 20) == writer.below(1 << 20)
    return result


@pytest.mark.parametrize("randomise", [False, True])
@pytest.mark.parametrize("size", [1, 3, 4, 5, 4096, 200_003])
def test_round_trip(make_config, randomise, size):
    config = make_config(randomise=randomise)
    result = write_then_verify(config, size)
    assert result.ok, result.failures
    assert os.path.getsize(config.file_path(0)) == size


def test_write_refuses_existing_file(make_config):
    config = make_config()
    spec = FileSpec(0, config.file_path(0), 10)
    with open(spec.path, "wb") as f:
        f.write(b"old")
    with pytest.raises(WriteError) as ex:
        write_file(config, spec, SequenceGenerator(1))
    assert ex.value.filename == spec.path
    with open(spec.path, "rb") as f:
        assert f.read() == b"old"


def test_write_into_missing_directory(make_config, tmp_path):
    config = make_config(directory=str(tmp_path / "missing"))
    with pytest.raises(WriteError):
        write_file(config, FileSpec(0, config.file_path(0), 10), SequenceGenerator(1))


def test_write_with_fsync(make_config, monkeypatch):
    synced = []
    real_fsync = os.fsync
    monkeypatch.setattr(session.os, "fsync", lambda fd: synced.append(fd) or real_fsync(fd))
    config = make_config(fsync=True)
    write_file(config, FileSpec(0, config.file_path(0), 100), SequenceGenerator(1))
    assert len(synced) == 1


def test_interval_only_applies_to_writes(make_config, monkeypatch):
    sleeps = []
    monkeypatch.setattr(session.time, "sleep", sleeps.append)
    config = make_config(interval=0.25, chunk_size=100)
    spec = FileSpec(0, config.file_path(0), 1000)
    write_file(config, spec, SequenceGenerator(1))
    assert len(sleeps) >= 10
    assert set(sleeps) == {0.25}

    sleeps.clear()
    verify_config = make_config(verify=True, chunk_size=100)
    assert verify_file(verify_config, spec, SequenceGenerator(1)).ok
    assert sleeps == []


def flip_byte(offset):
    def mutate(path):
        with open(path, "r+b") as f:
            f.seek(offset)
            b = f.read(1)
            f.seek(offset)
            f.write(bytes([b[0] ^ 0x01]))

    return mutate


@pytest.mark.parametrize("randomise", [False, True])
def test_flipped_byte_is_reported_once(make_config, randomise):
    result = write_then_verify(make_config(randomise=randomise), 50_000, flip_byte(12_345))
    assert [(f.kind, f.offset) for f in result.failures] == [(FailureKind.CORRUPT, 12_345)]


def test_two_flipped_bytes_in_different_chunks(make_config):
    config = make_config(randomise=True, chunk_size=1024)

    def mutate(path):
        flip_byte(100)(path)
        flip_byte(40_000)(path)

    result = write_then_verify(config, 50_000, mutate)
    assert [(f.kind, f.offset) for f in result.failures] == [
        (FailureKind.CORRUPT, 100),
        (FailureKind.CORRUPT, 40_000),
    ]


@pytest.mark.parametrize("missing", [1, 10, 4095])
def test_truncation_is_reported(make_config, missing):
    size = 20_000
    result = write_then_verify(
        make_config(randomise=True), size, lambda p: os.truncate(p, size - missing)
    )
    assert len(result.failures) == 1
    assert result.failures[0].kind in (FailureKind.SHORT_READ, FailureKind.TRUNCATED)
    assert result.failures[0].offset <= size - missing


def test_empty_file_is_truncated(make_config):
    result = write_then_verify(make_config(randomise=True), 20_000, lambda p: os.truncate(p, 0))
    assert [(f.kind, f.offset) for f in result.failures] == [(FailureKind.TRUNCATED, 0)]


def test_extra_data_is_reported(make_config):
    def append(path):
        with open(path, "ab") as f:
            f.write(b"x")

    result = write_then_verify(make_config(randomise=True), 9_999, append)
    assert [(f.kind, f.offset) for f in result.failures] == [(FailureKind.TOO_LONG, 9_999)]


def test_missing_file_is_reported(make_config):
    result = write_then_verify(make_config(randomise=True), 30_000, os.unlink)
    assert [f.kind for f in result.failures] == [FailureKind.OPEN_FAILED]


def test_skip_content_matches_write(make_config):
    config = make_config(randomise=True, chunk_size=512)
    writer = SequenceGenerator(1, True)
    write_file(config, FileSpec(0, config.file_path(0), 5000), writer)
    skipper = SequenceGenerator(1, True)
    session.skip_content(config, skipper, 0, 5000)
    assert skipper.advance(0, 8) == writer.advance(0, 8)


def test_directory_in_place_of_file(make_config):
    def replace_with_directory(path):
        os.unlink(path)
        os.mkdir(path)

    result = write_then_verify(make_config(randomise=True), 30_000, replace_with_directory)
    assert [(f.kind, f.offset) for f in result.failures] == [(FailureKind.READ_ERROR, 0)]


def test_read_error_after_content(make_config, monkeypatch):
    size = 10_000
    real_read = os.read
    consumed = []

    def read(fd, n):
        if sum(consumed) == size:
            raise OSError(errno.EIO, os.strerror(errno.EIO))
        data = real_read(fd, n)
        consumed.append(len(data))
        return data

    monkeypatch.setattr(session.os, "read", read)
    result = write_then_verify(make_config(randomise=True), size)
    assert [(f.kind, f.offset) for f in result.failures] == [(FailureKind.READ_ERROR, size)]


def test_short_write_is_fatal(make_config, monkeypatch):
    real_write = os.write
    monkeypatch.setattr(session.os, "write", lambda fd, data: real_write(fd, bytes(data)[:-1]))
    config = make_config()
    spec = FileSpec(0, config.file_path(0), 100)
    with pytest.raises(WriteError) as ex:
        write_file(config, spec, SequenceGenerator(1))
    assert ex.value.errno == errno.EIO
    assert ex.value.filename == spec.path


def test_fsync_failure_is_fatal(make_config, monkeypatch):
    def fsync(fd):
        raise OSError(errno.EIO, os.strerror(errno.EIO))

    monkeypatch.setattr(session.os, "fsync", fsync)
    config = make_config(fsync=True)
    spec = FileSpec(0, config.file_path(0), 100)
    with pytest.raises(WriteError) as ex:
        write_file(config, spec, SequenceGenerator(1))
    assert ex.value.errno == errno.EIO
    assert ex.value.filename == spec.path


def test_buffer_allocation_failure_is_fatal(make_config, monkeypatch):
    def no_memory(size):
        raise MemoryError()

    monkeypatch.setattr(session, "bytearray", no_memory, raising=False)
    config = make_config()
    spec = FileSpec(0, config.file_path(0), 100)
    with pytest.raises(WriteError) as ex:
        write_file(config, spec, SequenceGenerator(1))
    assert ex.value.errno == errno.ENOMEM
    assert not os.path.exists(spec.path)
