from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sentdetect-stream")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"

PROGRAM_NAME = "sentdetect-stream"
