"""UTF-8 repair for byte streams coming from untrusted sources."""

from __future__ import annotations

from typing import Union


def _sequence_length(lead: int) -> int:
    if lead < 0x80:
        return 1
    if lead & 0xE0 == 0xC0:
        return 2
    if lead & 0xF0 == 0xE0:
        return 3
    if lead & 0xF8 == 0xF0:
        return 4
    return 0


def _is_continuation(byte: int) -> bool:
    return byte & 0xC0 == 0x80


def sanitize_utf8(data: Union[bytes, bytearray, str]) -> str:
    """Return ``data`` as text, dropping every malformed UTF-8 sequence.

    A malformed sequence (bad or missing continuation bytes, truncation at the
    end of the buffer, overlong or surrogate encodings) loses its lead byte
    only; scanning resumes at the following byte. Nothing is replaced and no
    error is raised.
    """
    if isinstance(data, str):
        data = data.encode("utf-8", "surrogatepass")

    # The strict codec rejects exactly the sequences dropped below.
    try:
        return bytes(data).decode("utf-8")
    except UnicodeDecodeError:
        pass

    out = bytearray()
    i = 0
    size = len(data)
    while i < size:
        length = _sequence_length(data[i])
        if length == 1:
            out.append(data[i])
            i += 1
            continue
        if length == 0 or i + length > size:
            i += 1
            continue

        sequence = bytes(data[i : i + length])
        if not all(_is_continuation(b) for b in sequence[1:]):
            i += 1
            continue
        try:
            sequence.decode("utf-8")
        except UnicodeDecodeError:
            i += 1
            continue
        out += sequence
        i += length

    return out.decode("utf-8")
