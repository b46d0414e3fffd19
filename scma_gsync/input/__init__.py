"""Source record providers."""

from scma_gsync.input.base import Source
from scma_gsync.input.file import FileSource

__all__ = ["Source", "FileSource"]
