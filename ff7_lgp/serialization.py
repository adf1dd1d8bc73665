from dataclasses import dataclass, fields
from typing import NewType, get_args, Annotated
from struct import pack_into, unpack_from, error as StructError
from warnings import warn


def FixedArray(tp, length):
    return NewType("FixedArray", Annotated[tp, length])


class SerializationError(Exception):
    pass


@dataclass
class Numeric:
    """Contains numeric types"""

    type_info = {
        # newtype name: python type, structlib format
        "U8": (int, "<B"),
        "U16": (int, "<H"),
        "U32": (int, "<L"),
    }

    type_sizes = {
        "B": 1,
        "H": 2,
        "L": 4,
    }

    @staticmethod
    def format_of_type(tp) -> str:
        """Returns the structlib format of the given type"""
        entry = Numeric.type_info.get(getattr(tp, "__name__", None))
        if not entry:
            return None
        return entry[1]

    @staticmethod
    def size_of_format(fmt: str) -> int:
        size_sum = 0
        count = ""
        for ch in fmt:
            if ch.isdigit():
                count += ch
                continue
            size_sum += Numeric.type_sizes.get(ch, 0) * int(count or 1)
            count = ""
        return size_sum


# Create NewTypes and store them in Numeric class
def generate_numeric_types():
    for name in Numeric.type_info:
        (tp, fmt) = Numeric.type_info[name]
        setattr(Numeric, name, NewType(name, tp))
generate_numeric_types()


class ResizableBuffer:
    def __init__(self, *args, size=0, buf=None):
        if buf is None:
            self.buffer = bytearray(size)
        else:
            self.buffer = buf
        self.offset = 0

    @property
    def capacity(self) -> int:
        return len(self.buffer)

    def _reserve(self, count: int):
        remaining = self.capacity - self.offset
        if count > remaining:
            self.buffer += bytes(count - remaining)

    def seek(self, offset: int):
        self._reserve(offset - self.offset)
        self.offset = offset

    def write(self, data) -> int:
        """Copies raw bytes at the current offset. Returns absolute offset of where data was written"""
        offset_before = self.offset
        self._reserve(len(data))
        self.buffer[self.offset:self.offset + len(data)] = data
        self.offset += len(data)
        return offset_before

    def pack(self, fmt: str, *vals) -> int:
        """Returns absolute offset of where data was written"""
        offset_before = self.offset
        item_size = Numeric.size_of_format(fmt)
        self._reserve(item_size)
        pack_into(fmt, self.buffer, self.offset, *vals)
        self.offset += item_size
        return offset_before


class Serializable:
    """Base for fixed-size little-endian records declared as dataclasses.

    Members are typed with the Numeric newtypes or with FixedArray(Numeric.X, n).
    FixedArray members hold a list of ints and are zero padded when serialized.
    """

    @classmethod
    def _layout(cls) -> list[tuple[str, str, int]]:
        """(member name, structlib format, element count or 0 for scalars)"""
        layout = cls.__dict__.get("_cached_layout")
        if layout is not None:
            return layout
        layout = []
        for member in fields(cls):
            tp = member.type
            if getattr(tp, "__name__", None) == "FixedArray":
                (elem_type, length) = get_args(tp.__supertype__)
                fmt = Numeric.format_of_type(elem_type)
                if fmt is None:
                    raise SerializationError("Unserializable element type in member '{}' of '{}'".format(member.name, cls.__name__))
                layout.append((member.name, "<{}{}".format(length, fmt[1:]), length))
            else:
                fmt = Numeric.format_of_type(tp)
                if fmt is None:
                    raise SerializationError("Unserializable member '{}' of '{}'".format(member.name, cls.__name__))
                layout.append((member.name, fmt, 0))
        cls._cached_layout = layout
        return layout

    @classmethod
    def type_size(cls) -> int:
        """Similar to sizeof()"""
        return sum(Numeric.size_of_format(fmt) for (_, fmt, _) in cls._layout())

    def serialize_into(self, buf: ResizableBuffer) -> int:
        """Writes members of this object into given buffer.
        Returns absolute offset of where data was written."""
        first_offset = buf.offset
        for (name, fmt, length) in self._layout():
            value = getattr(self, name)
            try:
                if length:
                    values = list(value)
                    if len(values) > length:
                        warn("FixedArray member '{}' of class '{}' was truncated during serialization".format(name, type(self).__name__))
                        values = values[:length]
                    elif len(values) < length:
                        # Pad with zeros
                        values += [0] * (length - len(values))
                    buf.pack(fmt, *values)
                else:
                    buf.pack(fmt, value)
            except StructError as err:
                # Rethrow with more info
                raise SerializationError("Serialization error in member '{}' of '{}' with value '{}': {}".format(name, type(self).__name__, value, err.args[0])) from err
        return first_offset

    @classmethod
    def deserialize_from(cls, buf, offset=0):
        """Assumes class has default constructor. Returns (item, offset after item)"""
        result = cls()
        for (name, fmt, length) in cls._layout():
            values = unpack_from(fmt, buf, offset)
            setattr(result, name, list(values) if length else values[0])
            offset += Numeric.size_of_format(fmt)
        return (result, offset)

    @classmethod
    def read_sequence(cls, buf, offset, count) -> list:
        items = []
        if count < 1:
            return items
        size = cls.type_size()
        for _ in range(count):
            (item, _) = cls.deserialize_from(buf, offset)
            items.append(item)
            offset += size
        return items
