def string_to_bytes(s: str, length: int = None) -> list[int]:
    """Encodes a fixed-width name field. Raises UnicodeEncodeError for characters outside latin-1"""
    b = list(s.encode("latin-1"))
    if length is not None:
        b = b[:length]
    return b


def bytes_to_string(b: list[int]) -> str:
    # Everything after the first null is padding (or garbage left by other tools)
    return bytes(b).split(b"\0", 1)[0].decode("latin-1")


def truncate_name(name: str, length: int) -> str:
    return bytes(string_to_bytes(name, length)).decode("latin-1")


def format_file_size(size: int, precision: int = None) -> str:
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    i = 0
    scaled = float(size)
    while scaled >= 1024 and i < len(units) - 1:
        scaled /= 1024
        i += 1
    if precision is None:
        precision = 1 if i > 0 else 0
    return "{:.{}f} {}".format(scaled, precision, units[i])
