"""Binary file detection for the notes folder."""

from pathlib import Path

# Suffixes of files that are never plaintext notes
BINARY_EXTENSIONS = frozenset(
    # Images and scans
    ".png .jpg .jpeg .gif .bmp .ico .webp .tiff .heic .svgz".split()
    # Office documents and PDFs
    + ".pdf .doc .docx .xls .xlsx .ppt .pptx .odt .ods .key .pages".split()
    # Archives
    + ".zip .tar .gz .tgz .rar .7z .bz2 .xz".split()
    # Audio and video
    + ".mp3 .m4a .ogg .wav .flac .mp4 .mov .avi .mkv .webm".split()
    # Compiled code and fonts
    + ".exe .dll .so .dylib .bin .pyc .pyo .class .o .wasm .ttf .otf .woff .woff2".split()
    # Databases, including our own index artifact
    + ".db .db-wal .db-shm .db-journal .sqlite .sqlite3".split()
)

BINARY_SAMPLE_SIZE = 8192


def is_binary_extension(path: str | Path) -> bool:
    return Path(path).suffix.lower() in BINARY_EXTENSIONS


def is_binary_content(content: bytes, sample_size: int = BINARY_SAMPLE_SIZE) -> bool:
    """True if a NUL byte appears in the leading sample.

    Non-ASCII bytes are not counted against the file: notes are UTF-8 and may
    be written entirely in a non-Latin script.
    """
    return b"\x00" in content[:sample_size]


def detect_binary(path: str | Path, content: bytes) -> bool:
    """Classify a file by its suffix first, then by its leading bytes.

    Args:
        path: File path, for the suffix check
        content: Raw file content (only the leading sample is inspected)

    Returns:
        True if the file should not be indexed as text
    """
    if is_binary_extension(path):
        return True
    return is_binary_content(content)
