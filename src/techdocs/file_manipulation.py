from __future__ import annotations

from typing import TYPE_CHECKING

from techdocs.config import DEFAULT_LANGUAGE_TAG, FormattedBlock

if TYPE_CHECKING:
    from pathlib import Path


def language_tag(path: Path) -> str:
    """Derive the code fence tag of a file from its extension.

    The extension is used as-is (no lowercasing, no mapping), so ``main.RS``
    gets ``RS``. Files without an extension get the generic ``txt`` tag.

    Args:
        path (Path): the file path

    Returns:
        str: the fence tag
    """
    suffix = path.suffix
    return suffix[1:] if len(suffix) > 1 else DEFAULT_LANGUAGE_TAG


def decode_text(data: bytes) -> str:
    """Decode file bytes as strict UTF-8.

    Raises:
        UnicodeDecodeError: if the bytes are not valid UTF-8 (binary content).
    """
    return data.decode("utf-8")


def format_file_content(path: Path, content: str, size: int | None = None) -> FormattedBlock:
    """Render a decoded file into a block for the bundle.

    Args:
        path (Path): the path shown in the header line
        content (str): the decoded file text, kept verbatim
        size (int | None): the source byte length; defaults to the UTF-8 length of ``content``

    Returns:
        FormattedBlock: the immutable block
    """
    if size is None:
        size = len(content.encode("utf-8"))
    return FormattedBlock(path=path, language=language_tag(path), content=content, size=size)
