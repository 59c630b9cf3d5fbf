import re
import sys
from typing import Optional

import click
from loguru import logger

from filegen.config import DEFAULT_MAX_FILE_SIZE, DEFAULT_TOTAL_BYTES, ConfigError, RunConfig
from filegen.driver import RunResult, plan as plan_run, run
from filegen.planner import DEFAULT_CHUNK_SIZE
from filegen.session import WriteError

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | {message}"


def abort(msg):
    click.echo(click.style(msg, fg="red"), err=True)
    sys.exit(1)


class SizeType(click.ParamType):
    name = "size"
    UNITS = {"": 1, "k": 1 << 10, "m": 1 << 20, "g": 1 << 30, "t": 1 << 40}
    PATTERN = re.compile(r"^(\d+)\s*([kmgt]?)(?:i?b)?$", re.IGNORECASE)

    def get_metavar(self, param, ctx=None) -> str:
        return "SIZE[K|M|G|T]"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        m = self.PATTERN.match(str(value).strip())
        if not m:
            self.fail(f"{value} is invalid, expected a byte count like 4096, 64K or 16M", param, ctx)
        return int(m.group(1)) * self.UNITS[m.group(2).lower()]


class DurationType(click.ParamType):
    """Duration in seconds, a bare number is taken as nanoseconds"""

    name = "duration"
    UNITS = {"ns": 1e-9, "us": 1e-6, "ms": 1e-3, "s": 1.0}
    PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*(ns|us|ms|s)?$", re.IGNORECASE)

    def get_metavar(self, param, ctx=None) -> str:
        return "NUM[ns|us|ms|s]"

    def convert(self, value, param, ctx):
        if isinstance(value, (int, float)):
            return float(value)
        m = self.PATTERN.match(str(value).strip())
        if not m:
            self.fail(f"{value} is invalid, expected a duration like 500000, 10us or 5ms", param, ctx)
        unit = (m.group(2) or "ns").lower()
        return float(m.group(1)) * self.UNITS[unit]


def run_options(func):
    options = [
        click.option(
            "-t", "--total-bytes", type=SizeType(), default=str(DEFAULT_TOTAL_BYTES), show_default=True,
            help="Total bytes to write or verify across all files",
        ),
        click.option(
            "-f", "--max-file-size", type=SizeType(), default=str(DEFAULT_MAX_FILE_SIZE), show_default=True,
            help="Maximum size of a single file",
        ),
        click.option("-p", "--prefix", default="", help="Prefix for test file names"),
        click.option(
            "-s", "--seed", type=click.IntRange(min=1), default=None,
            help="Random seed, derived from the current time if omitted",
        ),
        click.option(
            "-r", "--randomise", is_flag=True, default=False,
            help="Fill files with random words instead of their index byte",
        ),
        click.option(
            "--chunk-size", type=SizeType(), default=str(DEFAULT_CHUNK_SIZE), show_default=True,
            help="Largest single read or write",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def make_config(**kwargs) -> RunConfig:
    try:
        return RunConfig(**kwargs)
    except ConfigError as ex:
        abort(f"Invalid configuration: {ex}")


def report(result: RunResult):
    config = result.config
    if not result.ok:
        click.echo(f"{len(result.failed)} of {len(result.files)} files failed verification:", err=True)
        for f in result.failed:
            kinds = ", ".join(str(failure) for failure in f.failures)
            click.echo(f"- {f.spec.path}: {kinds}", err=True)
        abort(f"Verification failed, reproduce with --seed {config.seed}")
    click.echo(
        f"{config.action} finished: {len(result.files)} files, "
        f"{result.total_bytes} bytes, seed {config.seed}"
    )


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
)
def cli(log_level: str):
    """
    Write files of reproducible content and verify them later
    """
    logger.remove()
    logger.add(sys.stderr, level=log_level.upper(), format=LOG_FORMAT)


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@run_options
@click.option("-i", "--interval", type=DurationType(), default=None, help="Pause between writes")
@click.option("--fsync", is_flag=True, default=False, help="fsync each file before closing it")
def write(directory: str, interval: Optional[float], fsync: bool, **kwargs):
    """
    Write test files into DIRECTORY

    \b
    Example:
    filegen_cli write /mnt/test -t 1G -f 16M -s 42

    \b
    - Existing files are never overwritten, the run fails on the first name collision.
    - Note the seed printed at start, it is needed to verify the files later.
    """
    config = make_config(directory=directory, interval=interval or 0.0, fsync=fsync, **kwargs)
    try:
        result = run(config)
    except WriteError as ex:
        abort(f"Write failed: {ex}")
    report(result)


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@run_options
def verify(directory: str, **kwargs):
    """
    Verify test files in DIRECTORY written with the same options and seed
    """
    if kwargs["seed"] is None:
        abort("Use --seed to give the seed the files were written with")
    report(run(make_config(directory=directory, verify=True, **kwargs)))


@cli.command()
@click.argument("directory", type=click.Path(file_okay=False), default=".", required=False)
@run_options
def plan(directory: str, **kwargs):
    """
    List the files a run would create, without touching the disk
    """
    config = make_config(directory=directory, **kwargs).with_seed()
    total = 0
    for spec in plan_run(config):
        click.echo(f"{spec.path}\t{spec.size}")
        total += spec.size
    click.echo(f"seed {config.seed}, {total} bytes", err=True)


def main():
    cli(auto_envvar_prefix="FILEGEN")


if __name__ == "__main__":
    main()
