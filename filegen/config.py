import dataclasses
import os
import time
from typing import Optional

from filegen.planner import DEFAULT_CHUNK_SIZE, MAX_CHUNK_SIZE

DEFAULT_MAX_FILE_SIZE = 1 << 24
DEFAULT_TOTAL_BYTES = 1 << 30
NAME_WIDTH = 8


class ConfigError(ValueError):
    pass


def derive_seed() -> int:
    now = time.time_ns()
    seconds, micros = divmod(now // 1000, 1_000_000)
    return (seconds ^ micros) or 1


@dataclasses.dataclass(frozen=True)
class RunConfig:
    directory: str = "."
    total_bytes: int = DEFAULT_TOTAL_BYTES
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    prefix: str = ""
    seed: Optional[int] = None
    randomise: bool = False
    interval: float = 0.0
    fsync: bool = False
    verify: bool = False
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        if self.total_bytes < 1:
            raise ConfigError(f"total bytes must be positive, got {self.total_bytes}")
        if self.max_file_size < 1:
            raise ConfigError(f"max file size must be positive, got {self.max_file_size}")
        if self.max_file_size > self.total_bytes:
            raise ConfigError(
                f"max file size {self.max_file_size} bigger than total size {self.total_bytes}"
            )
        if self.chunk_size < 1:
            raise ConfigError(f"chunk size must be positive, got {self.chunk_size}")
        if self.chunk_size > MAX_CHUNK_SIZE:
            raise ConfigError(f"chunk size {self.chunk_size} above the largest single transfer {MAX_CHUNK_SIZE}")
        if self.seed is not None and self.seed < 0:
            raise ConfigError(f"seed must not be negative, got {self.seed}")
        if self.interval < 0:
            raise ConfigError(f"interval must not be negative, got {self.interval}")
        if self.interval and self.verify:
            raise ConfigError("interval when verifying doesn't make sense")
        if os.sep in self.prefix:
            raise ConfigError(f"prefix {self.prefix!r} must not contain {os.sep!r}")

    @property
    def action(self) -> str:
        return "verifying" if self.verify else "writing"

    def with_seed(self) -> "RunConfig":
        """Copy of this config with a concrete seed, derived from the clock if unset"""
        if self.seed is not None:
            return self
        return dataclasses.replace(self, seed=derive_seed())

    def file_name(self, index: int) -> str:
        return f"{self.prefix}{index:0{NAME_WIDTH}x}"

    def file_path(self, index: int) -> str:
        return os.path.join(self.directory, self.file_name(index))
