from .reader import RawGrid, UnreadableFileError, read_raw_grid

__all__ = ["RawGrid", "UnreadableFileError", "read_raw_grid"]
