from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("filegen")
except PackageNotFoundError:
    __version__ = "debug"
