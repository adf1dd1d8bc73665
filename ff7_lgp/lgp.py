import os
import zipfile
from dataclasses import dataclass, field, replace
from enum import Enum
from struct import unpack_from
from warnings import warn
from .serialization import Serializable, Numeric, FixedArray, ResizableBuffer
from . import util


U8 = Numeric.U8
U16 = Numeric.U16
U32 = Numeric.U32

MAGIC = "SQUARESOFT"
TERMINATOR = "FINAL FANTASY7"
DEFAULT_KIND_TAG = 0x0e
LOOKUP_VALUE_MAX = 30
HASH_SLOT_COUNT = LOOKUP_VALUE_MAX * LOOKUP_VALUE_MAX
MAX_FILENAME_LENGTH = 19
NAME_FIELD_SIZE = 20
MAGIC_FIELD_SIZE = 10
FOLDER_NAME_SIZE = 128
COUNT_SIZE = 2


class LgpError(Exception):
    def __init__(self, message: str):
        super().__init__("LGP Error: " + message)


class FormatError(LgpError):
    """The buffer is not a readable LGP archive"""


class ValidationError(LgpError):
    """A filename the format cannot represent"""


@dataclass
class LgpHeader(Serializable):
    reserved1: U16 = 0
    magic: FixedArray(U8, MAGIC_FIELD_SIZE) = field(default_factory=list)
    file_count: U16 = 0
    reserved2: U16 = 0


@dataclass
class DirectoryRecord(Serializable):
    # No size here, it is only stored in the file block
    name: FixedArray(U8, NAME_FIELD_SIZE) = field(default_factory=list)
    offset: U32 = 0
    kind_tag: U8 = 0
    path_group_index: U16 = 0


@dataclass
class HashSlot(Serializable):
    first_entry_index: U16 = 0  # 1-based, 0 means empty
    match_count: U16 = 0


@dataclass
class PathRecord(Serializable):
    folder_name: FixedArray(U8, FOLDER_NAME_SIZE) = field(default_factory=list)
    directory_index: U16 = 0


@dataclass
class FileHeader(Serializable):
    name: FixedArray(U8, NAME_FIELD_SIZE) = field(default_factory=list)
    size: U32 = 0


HEADER_SIZE = LgpHeader.type_size()
DIRECTORY_RECORD_SIZE = DirectoryRecord.type_size()
HASH_TABLE_SIZE = HASH_SLOT_COUNT * HashSlot.type_size()
PATH_RECORD_SIZE = PathRecord.type_size()
FILE_HEADER_SIZE = FileHeader.type_size()


@dataclass
class DirectoryEntry:
    filename: str
    stored_offset: int = 0
    runtime_filesize: int = 0
    kind_tag: int = DEFAULT_KIND_TAG
    path_group_index: int = 0


@dataclass
class PathEntry:
    folder_name: str
    directory_index: int


@dataclass
class PathGroup:
    entries: list[PathEntry] = field(default_factory=list)


def lookup_value(char: str) -> int:
    """Maps a filename character onto the 30 symbol hash alphabet"""
    if len(char) != 1:
        raise ValidationError("Invalid length for char lookup: '{}'".format(char))
    if char == "_":
        return 10  # same as 'k'
    if char == "-":
        return 11  # same as 'l'
    if "0" <= char <= "9":
        return ord(char) - ord("0")
    if "a" <= char <= "z":
        return ord(char) - ord("a")
    if "A" <= char <= "Z":
        return ord(char) - ord("A")
    raise ValidationError("Invalid character in filename: '{}'".format(char))


def file_stem(filename: str) -> str:
    return filename.split(".", 1)[0]


def compute_hash(filename: str) -> int:
    """Returns the hash table slot of a filename, derived from the first two characters of its stem"""
    stem = file_stem(filename)
    if len(stem) == 0:
        raise ValidationError("Invalid filename '{}': empty stem".format(filename))
    h = lookup_value(stem[0]) * LOOKUP_VALUE_MAX
    if len(stem) > 1:
        h += lookup_value(stem[1]) + 1
    return h


def build_hash_index(entries: list[DirectoryEntry]) -> list[HashSlot]:
    slots = [HashSlot() for _ in range(HASH_SLOT_COUNT)]
    for (i, entry) in enumerate(entries):
        slot = slots[compute_hash(entry.filename)]
        slot.match_count += 1
        if slot.first_entry_index == 0:
            slot.first_entry_index = i + 1
    return slots


def _encode_name(name: str, length: int) -> list[int]:
    try:
        return util.string_to_bytes(name, length)
    except UnicodeEncodeError as err:
        raise ValidationError("Filename '{}' contains characters that can not be stored".format(name)) from err


class ChangeKind(Enum):
    REPLACED = "replaced"
    INSERTED = "inserted"
    DELETED = "deleted"


class PendingChanges:
    """Uncommitted edits keyed by filename, shadowing the source buffer until the archive is written"""

    def __init__(self):
        self._changes: dict[str, tuple[ChangeKind, bytes]] = {}

    def replace(self, name: str, data: bytes):
        # Replacing a file that only exists in memory keeps it an insertion
        kind = ChangeKind.INSERTED if self.kind_of(name) is ChangeKind.INSERTED else ChangeKind.REPLACED
        self._changes[name] = (kind, bytes(data))

    def insert(self, name: str, data: bytes):
        self._changes[name] = (ChangeKind.INSERTED, bytes(data))

    def delete(self, name: str):
        if self.kind_of(name) is ChangeKind.INSERTED:
            del self._changes[name]
        else:
            self._changes[name] = (ChangeKind.DELETED, None)

    def kind_of(self, name: str) -> ChangeKind:
        change = self._changes.get(name)
        return change[0] if change else None

    def get(self, name: str) -> bytes:
        change = self._changes.get(name)
        if change is None:
            return None
        return change[1]

    def names(self, kind: ChangeKind = None) -> list[str]:
        return [name for (name, (k, _)) in self._changes.items() if kind is None or k is kind]

    def __contains__(self, name: str) -> bool:
        return name in self._changes

    def __len__(self) -> int:
        return len(self._changes)


class Archive:
    """In-memory model of an LGP archive.

    Edits only touch the directory and the pending changes. The hash table, file offsets and
    path table are laid out again from scratch by write_archive(), which never modifies the
    source buffer."""

    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.magic = ""
        self.entries: list[DirectoryEntry] = []
        self.hash_index: list[HashSlot] = []
        self.path_groups: list[PathGroup] = []
        self.pending = PendingChanges()
        self._by_name: dict[str, DirectoryEntry] = {}
        self._parse()

    @classmethod
    def open(cls, data: bytes) -> "Archive":
        return cls(data)

    def _require(self, end: int, what: str):
        if end > len(self.data):
            raise FormatError("Archive is truncated: {} needs {} bytes but the buffer has {}".format(what, end, len(self.data)))

    def _parse(self):
        self._require(HEADER_SIZE, "header")
        (header, offset) = LgpHeader.deserialize_from(self.data)
        self.magic = util.bytes_to_string(header.magic)
        if self.magic != MAGIC:
            raise FormatError("Invalid LGP header: expected '{}', got '{}'".format(MAGIC, self.magic))

        self._require(offset + header.file_count * DIRECTORY_RECORD_SIZE + HASH_TABLE_SIZE + COUNT_SIZE, "directory and hash table")
        records = DirectoryRecord.read_sequence(self.data, offset, header.file_count)
        offset += header.file_count * DIRECTORY_RECORD_SIZE
        self.hash_index = HashSlot.read_sequence(self.data, offset, HASH_SLOT_COUNT)
        offset += HASH_TABLE_SIZE

        (group_count, ) = unpack_from("<H", self.data, offset)
        offset += COUNT_SIZE
        for _ in range(group_count):
            self._require(offset + COUNT_SIZE, "path table")
            (path_count, ) = unpack_from("<H", self.data, offset)
            offset += COUNT_SIZE
            self._require(offset + path_count * PATH_RECORD_SIZE, "path table")
            paths = PathRecord.read_sequence(self.data, offset, path_count)
            offset += path_count * PATH_RECORD_SIZE
            self.path_groups.append(PathGroup(entries=[
                PathEntry(folder_name=util.bytes_to_string(p.folder_name), directory_index=p.directory_index)
                for p in paths]))

        # File sizes are only stored in each file block, so read them in a second pass
        for record in records:
            name = util.bytes_to_string(record.name)
            self._require(record.offset + FILE_HEADER_SIZE, "file header of '{}'".format(name))
            (file_header, payload_offset) = FileHeader.deserialize_from(self.data, record.offset)
            self._require(payload_offset + file_header.size, "payload of '{}'".format(name))
            entry = DirectoryEntry(
                filename=name,
                stored_offset=record.offset,
                runtime_filesize=file_header.size,
                kind_tag=record.kind_tag,
                path_group_index=record.path_group_index)
            self.entries.append(entry)
            if name in self._by_name:
                warn("LGP Warning: Archive contains more than one file named '{}', only the first one can be looked up".format(name))
            else:
                self._by_name[name] = entry

    @property
    def file_count(self) -> int:
        return len(self.entries)

    def _payload(self, entry: DirectoryEntry) -> bytes:
        # Edits are keyed by name, so they belong to the entry that name resolves to
        if self._by_name.get(entry.filename) is entry:
            data = self.pending.get(entry.filename)
            if data is not None:
                return data
        start = entry.stored_offset + FILE_HEADER_SIZE
        return self.data[start:start + entry.runtime_filesize]

    def entry(self, name: str) -> DirectoryEntry:
        entry = self._by_name.get(name)
        return replace(entry) if entry else None

    def get_file(self, name: str) -> bytes:
        entry = self._by_name.get(name)
        if entry is None:
            return None
        return self._payload(entry)

    def set_file(self, name: str, data: bytes) -> bool:
        entry = self._by_name.get(name)
        if entry is None:
            return False
        entry.runtime_filesize = len(data)
        self.pending.replace(name, data)
        return True

    def insert_file(self, name: str, data: bytes) -> bool:
        filename = util.bytes_to_string(_encode_name(name, MAX_FILENAME_LENGTH))
        if filename in self._by_name:
            return False
        entry = DirectoryEntry(filename=filename, runtime_filesize=len(data))
        self.entries.append(entry)
        self._by_name[filename] = entry
        self.pending.insert(filename, data)
        return True

    def insert_files(self, files: dict[str, bytes]) -> tuple[int, int]:
        """Returns (inserted, skipped) counts, names that already exist are skipped"""
        inserted = 0
        skipped = 0
        for (name, data) in files.items():
            if self.insert_file(name, data):
                inserted += 1
            else:
                skipped += 1
        return (inserted, skipped)

    def remove_file(self, name: str) -> bool:
        entry = self._by_name.pop(name, None)
        if entry is None:
            return False
        index = next(i for (i, e) in enumerate(self.entries) if e is entry)
        del self.entries[index]
        self.pending.delete(name)
        # A duplicate from the source archive becomes reachable again
        for other in self.entries:
            if other.filename == name:
                self._by_name[name] = other
                break
        return True

    def is_modified(self) -> bool:
        return len(self.pending) > 0

    def folder_of(self, name: str) -> str:
        entry = self._by_name.get(name)
        if entry is None or entry.path_group_index == 0:
            return ""
        index = next(i for (i, e) in enumerate(self.entries) if e is entry)
        folder = ""
        for group in self.path_groups:
            for path in group.entries:
                if path.directory_index == index:
                    folder = path.folder_name
        return folder

    def hash_index_is_consistent(self) -> bool:
        """Whether the stored hash table matches the one write_archive() would produce"""
        try:
            return self.hash_index == build_hash_index(self.entries)
        except ValidationError:
            return False

    def data_offset(self) -> int:
        """Size of everything in front of the first file block"""
        size = HEADER_SIZE
        size += len(self.entries) * DIRECTORY_RECORD_SIZE
        size += HASH_TABLE_SIZE
        size += COUNT_SIZE
        for group in self.path_groups:
            size += COUNT_SIZE
            size += len(group.entries) * PATH_RECORD_SIZE
        return size

    def total_payload_size(self) -> int:
        return sum(entry.runtime_filesize for entry in self.entries)

    def archive_size(self) -> int:
        return self.data_offset() + len(self.entries) * FILE_HEADER_SIZE + self.total_payload_size() + len(TERMINATOR)

    def _warn_dangling_paths(self):
        for group in self.path_groups:
            for path in group.entries:
                if path.directory_index >= len(self.entries):
                    warn("LGP Warning: Folder '{}' refers to file index {} but the archive only has {} files".format(
                        path.folder_name, path.directory_index, len(self.entries)))

    def write_archive(self, preserve_kind_tags=False) -> bytes:
        # Fails before anything is written if a name can not be hashed
        hash_index = build_hash_index(self.entries)
        self._warn_dangling_paths()

        offsets = []
        cursor = self.data_offset()
        for entry in self.entries:
            offsets.append(cursor)
            cursor += FILE_HEADER_SIZE + entry.runtime_filesize

        buf = ResizableBuffer(size=cursor + len(TERMINATOR))
        header = LgpHeader(magic=util.string_to_bytes(MAGIC), file_count=len(self.entries))
        header.serialize_into(buf)

        for (entry, offset) in zip(self.entries, offsets):
            record = DirectoryRecord(
                name=_encode_name(entry.filename, NAME_FIELD_SIZE),
                offset=offset,
                kind_tag=entry.kind_tag if preserve_kind_tags else DEFAULT_KIND_TAG,
                path_group_index=entry.path_group_index)
            record.serialize_into(buf)

        for slot in hash_index:
            slot.serialize_into(buf)

        # Path table is written back as it was read
        buf.pack("<H", len(self.path_groups))
        for group in self.path_groups:
            buf.pack("<H", len(group.entries))
            for path in group.entries:
                record = PathRecord(
                    folder_name=_encode_name(path.folder_name, FOLDER_NAME_SIZE),
                    directory_index=path.directory_index)
                record.serialize_into(buf)

        for (entry, offset) in zip(self.entries, offsets):
            payload = self._payload(entry)
            if len(payload) != entry.runtime_filesize:
                raise LgpError("Size of '{}' changed from {} to {} bytes".format(entry.filename, entry.runtime_filesize, len(payload)))
            buf.seek(offset)
            file_header = FileHeader(name=_encode_name(entry.filename, NAME_FIELD_SIZE), size=len(payload))
            file_header.serialize_into(buf)
            buf.write(payload)

        buf.write(TERMINATOR.encode("ascii"))
        return bytes(buf.buffer)

    def save(self, path: str, preserve_kind_tags=False):
        data = self.write_archive(preserve_kind_tags=preserve_kind_tags)
        with open(path, "wb") as f:
            f.write(data)

    def extract_all(self, directory: str, names=None) -> list[str]:
        """Writes files into directory. Returns the names that were written, unknown names are skipped"""
        os.makedirs(directory, exist_ok=True)
        written = []
        for name in self._selected_names(names):
            data = self.get_file(name)
            if data is None:
                continue
            with open(os.path.join(directory, os.path.basename(name)), "wb") as f:
                f.write(data)
            written.append(name)
        return written

    def extract_zip(self, path: str, names=None) -> list[str]:
        written = []
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name in self._selected_names(names):
                data = self.get_file(name)
                if data is None:
                    continue
                zf.writestr(name, data)
                written.append(name)
        return written

    def _selected_names(self, names):
        if names is None:
            return [entry.filename for entry in self.entries]
        return list(names)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self.entries)

    # Defined last so the builtin stays visible to the annotations above
    def list(self) -> list[DirectoryEntry]:
        return [replace(entry) for entry in self.entries]


def read_archive(path: str) -> Archive:
    with open(path, "rb") as f:
        return Archive.open(f.read())
