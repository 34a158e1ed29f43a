"""Utility functions for CLI operations."""

import re
import sys
from pathlib import Path
from typing import Optional
from urllib.parse import unquote

from cli.constants import GREEN, RESET

_FILENAME_STAR = re.compile(r"filename\*\s*=\s*(?:utf-8|UTF-8)''([^;]+)")
_FILENAME = re.compile(r'filename\s*=\s*"([^"]*)"')


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"


def filename_from_disposition(header: Optional[str], fallback: str) -> str:
    """
    Extract the suggested file name from a Content-Disposition header.

    The RFC 5987 filename* form wins over the plain one. Directory parts
    are dropped so the result is always a bare name.

    Args:
        header: Content-Disposition header value, may be None
        fallback: Name used when the header carries none

    Returns:
        Bare file name
    """
    name = None
    if header:
        match = _FILENAME_STAR.search(header)
        if match:
            name = unquote(match.group(1).strip())
        else:
            match = _FILENAME.search(header)
            if match:
                name = match.group(1)

    name = Path((name or fallback).replace('\\', '/')).name
    return name or fallback


def resolve_output_path(output_path: Optional[str], filename: str) -> Path:
    """
    Choose where a download is written.

    Args:
        output_path: User-supplied target, a file or an existing directory
        filename: Suggested name used when no file target is given

    Returns:
        Target path; parent directories are created
    """
    if output_path:
        target = Path(output_path).expanduser()
        if target.is_dir():
            target = target / filename
    else:
        target = Path.cwd() / filename

    target.parent.mkdir(parents=True, exist_ok=True)
    return target


def show_progress(label: str, done: int, total: int) -> None:
    """Rewrite the current stdout line with transfer progress."""
    if total > 0:
        progress = (done / total) * 100
        sys.stdout.write(
            f"\r{label}: {format_file_size(done)} / {format_file_size(total)} ({GREEN}{progress:.1f}%{RESET})"
        )
    else:
        sys.stdout.write(f"\r{label}: {format_file_size(done)}")
    sys.stdout.flush()


def end_progress() -> None:
    sys.stdout.write('\n')
    sys.stdout.flush()
