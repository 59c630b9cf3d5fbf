import dataclasses
from typing import Iterator, List, Optional

from loguru import logger

from filegen.config import RunConfig
from filegen.generator import SequenceGenerator
from filegen.planner import next_file_size
from filegen.session import FileResult, FileSpec, skip_content, verify_file, write_file


@dataclasses.dataclass
class RunResult:
    config: RunConfig
    files: List[FileResult] = dataclasses.field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(f.ok for f in self.files)

    @property
    def failed(self) -> List[FileResult]:
        return [f for f in self.files if not f.ok]

    @property
    def total_bytes(self) -> int:
        return sum(f.spec.size for f in self.files)


def make_generator(config: RunConfig) -> SequenceGenerator:
    assert config.seed is not None, "seed not resolved"
    return SequenceGenerator(config.seed, config.randomise)


def iter_files(config: RunConfig, generator: SequenceGenerator) -> Iterator[FileSpec]:
    """
    Yield the files of a run until the byte budget is used up

    The size of the next file is drawn only when the caller asks for it, so the
    caller must finish processing a file before advancing the iterator.
    """
    remaining = config.total_bytes
    index = 0
    while remaining > 0:
        size = next_file_size(generator, remaining, config.max_file_size)
        yield FileSpec(index, config.file_path(index), size)
        remaining -= size
        index += 1


def _log_start(config: RunConfig) -> None:
    logger.info(f"using random seed: {config.seed}")
    logger.info(f"max file size: {config.max_file_size} bytes")
    logger.info(f"total being {'verified' if config.verify else 'written'}: {config.total_bytes} bytes")


def run(config: RunConfig, generator: Optional[SequenceGenerator] = None) -> RunResult:
    """
    Write or verify every file of a run

    WriteError from the write path propagates and aborts the run; verify
    failures are collected in the result.
    """
    config = config.with_seed()
    if generator is None:
        generator = make_generator(config)
    _log_start(config)

    result = RunResult(config)
    for spec in iter_files(config, generator):
        logger.info(f"{config.action} {spec.path} ({spec.size} bytes)")
        if config.verify:
            result.files.append(verify_file(config, spec, generator))
        else:
            write_file(config, spec, generator)
            result.files.append(FileResult(spec))

    if result.ok:
        logger.info(f"{config.action} finished, {len(result.files)} files, {result.total_bytes} bytes")
    else:
        logger.error(f"{len(result.failed)} of {len(result.files)} files failed verification")
    return result


def plan(config: RunConfig, generator: Optional[SequenceGenerator] = None) -> List[FileSpec]:
    """Files a run with this config would produce, computed without any I/O"""
    config = config.with_seed()
    if generator is None:
        generator = make_generator(config)
    specs = []
    for spec in iter_files(config, generator):
        skip_content(config, generator, spec.index, spec.size)
        specs.append(spec)
    return specs
