"""
Patch Applier - Strict unified diff application against current file content
"""

from __future__ import annotations

import re

from errors import PatchConflictError, ValidationError
from models.diff import DiffHunk

HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
NO_NEWLINE_MARKER = "\\"


def split_lines(text: str) -> list[str]:
    """Split on "\\n" only, keeping the terminator so CRLF survives intact"""
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def parse_patch(patch: str) -> list[DiffHunk]:
    """Parse the hunks of a single-file unified diff"""
    hunks: list[DiffHunk] = []
    current: DiffHunk | None = None
    old_seen = new_seen = 0
    seen_file_header = False

    raw_lines = patch.split("\n")
    if raw_lines and raw_lines[-1] == "":
        raw_lines.pop()

    for raw in raw_lines:
        if raw.startswith(NO_NEWLINE_MARKER):
            if current is None or not current.lines:
                raise ValidationError("No-newline marker outside of a hunk")
            current.lines[-1] = current.lines[-1][:-1]
            continue

        incomplete = current is not None and (
            old_seen < current.old_count or new_seen < current.new_count
        )

        if incomplete:
            if raw == "":
                # Some generators strip the leading space of blank context lines
                raw = " "
            tag = raw[0]
            if tag not in " -+":
                raise ValidationError(f"Malformed hunk line: {raw!r}")
            current.lines.append(raw + "\n")
            if tag in " -":
                old_seen += 1
            if tag in " +":
                new_seen += 1
            if old_seen > current.old_count or new_seen > current.new_count:
                raise ValidationError("Hunk body exceeds the counts in its header")
            continue

        match = HUNK_HEADER.match(raw)
        if match:
            old_start, old_count, new_start, new_count = match.groups()
            current = DiffHunk(
                old_start=int(old_start),
                old_count=int(old_count) if old_count is not None else 1,
                new_start=int(new_start),
                new_count=int(new_count) if new_count is not None else 1,
                lines=[],
            )
            hunks.append(current)
            old_seen = new_seen = 0
            continue

        if raw.startswith("--- "):
            if hunks:
                raise ValidationError("Patch touches more than one file")
            seen_file_header = True
        # Remaining header noise (Index:, ====, +++, diff --git) is ignored

    if current is not None and (old_seen < current.old_count or new_seen < current.new_count):
        raise ValidationError("Patch ends inside a hunk")
    if not hunks:
        detail = "no hunks after file header" if seen_file_header else "no hunks"
        raise ValidationError(f"Patch has {detail}")
    return hunks


def apply_patch(content: str, patch: str, file_path: str = "file") -> str:
    """Apply a unified diff to content, returning the new content

    Context and removed lines must match the current content exactly at the
    position stated by each hunk header, line endings included. There is no
    fuzz and no offset search: any mismatch raises PatchConflictError.
    """
    hunks = parse_patch(patch)
    lines = split_lines(content)
    result: list[str] = []
    position = 0

    for hunk in hunks:
        start = hunk.old_start - 1 if hunk.old_count > 0 else hunk.old_start
        if start < position:
            raise ValidationError("Hunks overlap or are out of order")
        if start > len(lines):
            raise PatchConflictError(
                f"{file_path}: hunk at line {hunk.old_start} is past the end of the file"
            )

        result.extend(lines[position:start])
        index = start
        for line in hunk.lines:
            tag, text = line[0], line[1:]
            if tag == "+":
                result.append(text)
                continue
            if index >= len(lines) or lines[index] != text:
                raise PatchConflictError(
                    f"{file_path}: hunk at line {hunk.old_start} does not match current content "
                    f"(line {index + 1})"
                )
            if tag == " ":
                result.append(text)
            index += 1
        position = index

    result.extend(lines[position:])
    return "".join(result)
