from __future__ import annotations

from typing import Iterator, Optional

DEFAULT_CHUNK_LIMIT = 1950
FENCE = "```"


def split_response(text: str, limit: int = DEFAULT_CHUNK_LIMIT) -> list[str]:
    """Split model output into message-sized chunks.

    Lines accumulate into a chunk until adding the next one would reach
    ``limit``. A boundary inside a fenced code block closes the block at the
    end of the flushed chunk and reopens it, with the same language tag, at the
    start of the next one, so every chunk renders on its own.
    """
    if limit <= 0:
        raise ValueError("limit must be positive")
    if not text:
        return []

    chunks: list[str] = []
    lines: list[str] = []
    size = 0
    language: Optional[str] = None

    for line in _iter_lines(text):
        marker = _fence_marker(line)
        pieces = [line] if marker is not None else _hard_wrap(line, _budget(limit, language))
        for piece in pieces:
            added = len(piece) + (1 if lines else 0)
            if lines and size + added >= limit:
                chunk = _close_chunk(lines, language)
                if chunk:
                    chunks.append(chunk)
                if marker is not None and language is not None:
                    # The closing fence was just emitted by _close_chunk.
                    lines, size = [], 0
                    continue
                lines = [_reopen_fence(language)] if language is not None else []
                size = len(lines[0]) if lines else 0
                added = len(piece) + (1 if lines else 0)
            lines.append(piece)
            size += added
        if marker is not None:
            language = marker if language is None else None

    tail = "\n".join(lines)
    if tail:
        chunks.append(tail)
    return chunks


def _iter_lines(text: str) -> Iterator[str]:
    for raw in text.split("\n"):
        index = raw.find(FENCE)
        if index > 0 and raw[:index].strip() and FENCE not in raw[index + len(FENCE) :]:
            # Move a trailing fence onto its own line.
            yield raw[:index]
            yield raw[index:]
            continue
        yield raw


def _fence_marker(line: str) -> Optional[str]:
    """Language tag for a fence line ("" when untagged), ``None`` otherwise."""
    stripped = line.lstrip()
    if not stripped.startswith(FENCE):
        return None
    info = stripped[len(FENCE) :]
    if FENCE in info:
        # ```inline``` on a single line is not a block delimiter.
        return None
    return info.strip()


def _reopen_fence(language: str) -> str:
    return f"{FENCE}{language}"


def _close_chunk(lines: list[str], language: Optional[str]) -> str:
    body = "\n".join(lines)
    if not body:
        return ""
    if language is None:
        return body
    return f"{body}\n{FENCE}"


def _budget(limit: int, language: Optional[str]) -> int:
    reserved = 1
    if language is not None:
        reserved += len(_reopen_fence(language)) + 1
    return max(limit - reserved, 1)


def _hard_wrap(line: str, width: int) -> list[str]:
    if len(line) <= width:
        return [line]
    return [line[start : start + width] for start in range(0, len(line), width)]
