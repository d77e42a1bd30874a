from __future__ import annotations

from pathlib import Path

from requirements_planner.core.errors import DocumentLoadError


SUPPORTED_SUFFIXES: set[str] = {".md", ".markdown", ".txt"}


def load_document(path: str) -> str:
    """Read a requirements document as UTF-8 text.

    Content is returned untouched; the extractor owns interpretation, including
    treating an empty file as an empty plan.
    """

    p = Path(path)
    if not p.exists():
        raise DocumentLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    if p.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise DocumentLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message="supported formats are .md/.markdown and .txt",
            file=str(p),
        )

    try:
        return p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e
