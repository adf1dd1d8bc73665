import re


EXTENSION_TYPES = {
    "tex": "Texture",
    "tga": "Texture",
    "png": "Texture",
    "bmp": "Texture",
    "jpg": "Texture",
    "jpeg": "Texture",
    "tim": "Image",
    "p": "Model",
    "hrc": "Skeleton",
    "rsd": "Resource",
    "a": "Animation",
    "da": "Animation",
    "wav": "Audio",
    "ogg": "Audio",
    "mp3": "Audio",
    "mid": "MIDI",
    "avi": "Video",
    "bin": "Binary",
    "dat": "Data",
    "lzs": "Compressed",
    "txt": "Text",
    "ini": "Config",
    "cfg": "Config",
    "lgp": "Archive",
}

# Checked before the extension
FILENAME_PATTERNS = [
    (re.compile(r"^[a-z]{4}\.bin$"), "Field Script"),
    (re.compile(r"^[a-z]{4}$"), "Field"),
    (re.compile(r"^world.*\.lgp$"), "World Archive"),
    (re.compile(r"^battle.*\.lgp$"), "Battle Archive"),
    (re.compile(r"^magic.*\.lgp$"), "Magic Archive"),
]


def file_type(filename: str) -> str:
    lower = filename.lower()
    for (pattern, name) in FILENAME_PATTERNS:
        if pattern.match(lower):
            return name
    (_, dot, ext) = lower.rpartition(".")
    if not dot:
        return "Unknown"
    return EXTENSION_TYPES.get(ext, "Unknown")
