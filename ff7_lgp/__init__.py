from .lgp import (
    Archive,
    DirectoryEntry,
    PathEntry,
    PathGroup,
    PendingChanges,
    ChangeKind,
    LgpError,
    FormatError,
    ValidationError,
    compute_hash,
    read_archive,
)
from .lzss import compress, decompress, compress_lzs, decompress_lzs


__version__ = "0.1.0"
