"""Byte-level encoding detection for inventory exports.

Inventory exports arrive without any encoding metadata. PowerShell 5 writes
UTF-16LE (often without a byte-order mark), newer tooling writes UTF-8 with
or without a BOM. Detection order:

1. UTF-8 BOM (EF BB BF)
2. UTF-16LE / UTF-16BE BOM (FF FE / FE FF)
3. Zero-byte heuristic over the first 400 bytes: many zero bytes at odd
   offsets means ASCII text stored as UTF-16LE
4. UTF-8

Decoding never raises. The codec machinery is tried first; if it rejects the
buffer, a hand-rolled best-effort decoder takes over.
"""

import codecs
import logging
from typing import Literal

logger = logging.getLogger(__name__)

Encoding = Literal["utf-8", "utf-16le", "utf-16be"]

SAMPLE_LIMIT = 400
ZERO_BYTE_THRESHOLD = 40

_NATIVE_CODECS: dict[str, str] = {
    "utf-8": "utf-8-sig",
    "utf-16le": "utf-16-le",
    "utf-16be": "utf-16-be",
}


def detect_encoding(buffer: bytes) -> Encoding:
    """Guess the text encoding of ``buffer``."""
    if buffer[:3] == codecs.BOM_UTF8:
        return "utf-8"
    if buffer[:2] == codecs.BOM_UTF16_LE:
        return "utf-16le"
    if buffer[:2] == codecs.BOM_UTF16_BE:
        return "utf-16be"

    sample = buffer[:SAMPLE_LIMIT]
    odd_positions = len(sample) // 2
    zero_high_bytes = sum(1 for i in range(1, len(sample), 2) if sample[i] == 0)
    # Short buffers cannot reach the absolute threshold, so require half the odd bytes instead
    threshold = min(ZERO_BYTE_THRESHOLD, odd_positions // 2)
    if odd_positions and zero_high_bytes > threshold:
        return "utf-16le"
    return "utf-8"


def safe_decode(buffer: bytes, encoding: Encoding) -> str:
    """Decode ``buffer`` as ``encoding``, stripping a leading byte-order mark.

    Falls back to the manual decoders when the codec rejects the bytes.
    """
    try:
        text = bytes(buffer).decode(_NATIVE_CODECS[encoding])
    except (UnicodeDecodeError, LookupError) as e:
        logger.warning(f"Native {encoding} decoding failed ({e}); using manual decoder")
        if encoding == "utf-8":
            return manual_decode_utf8(buffer)
        return manual_decode_utf16(buffer, big_endian=encoding == "utf-16be")
    return _strip_bom(text)


def decode_inventory_buffer(buffer: bytes) -> str:
    """Detect the encoding of an inventory export and return its text."""
    encoding = detect_encoding(buffer)
    logger.debug(f"Detected {encoding} for {len(buffer)} byte buffer")
    return safe_decode(buffer, encoding)


# =============================================================================
# Manual decoders
# =============================================================================


def manual_decode_utf8(buffer: bytes) -> str:
    """Best-effort UTF-8 decoder.

    Truncated or invalid sequences are dropped rather than reported.
    """
    data = bytes(buffer)
    if data[:3] == codecs.BOM_UTF8:
        data = data[3:]

    out: list[str] = []
    i = 0
    length = len(data)
    while i < length:
        byte = data[i]
        if byte < 0x80:
            out.append(chr(byte))
            i += 1
        elif byte & 0xE0 == 0xC0 and i + 1 < length:
            cp = ((byte & 0x1F) << 6) | (data[i + 1] & 0x3F)
            out.append(chr(cp))
            i += 2
        elif byte & 0xF0 == 0xE0 and i + 2 < length:
            cp = ((byte & 0x0F) << 12) | ((data[i + 1] & 0x3F) << 6) | (data[i + 2] & 0x3F)
            out.append(chr(cp))
            i += 3
        elif byte & 0xF8 == 0xF0 and i + 3 < length:
            cp = (
                ((byte & 0x07) << 18)
                | ((data[i + 1] & 0x3F) << 12)
                | ((data[i + 2] & 0x3F) << 6)
                | (data[i + 3] & 0x3F)
            )
            if cp <= 0x10FFFF:
                out.append(chr(cp))
            i += 4
        else:
            # stray continuation byte or truncated sequence
            i += 1
    return "".join(out)


def manual_decode_utf16(buffer: bytes, big_endian: bool = False) -> str:
    """Best-effort UTF-16 decoder.

    Surrogate pairs are combined; an odd trailing byte is ignored.
    """
    data = bytes(buffer)
    bom = codecs.BOM_UTF16_BE if big_endian else codecs.BOM_UTF16_LE
    if data[:2] == bom:
        data = data[2:]

    units = [
        (data[i] << 8) | data[i + 1] if big_endian else data[i] | (data[i + 1] << 8)
        for i in range(0, len(data) - 1, 2)
    ]

    out: list[str] = []
    i = 0
    while i < len(units):
        unit = units[i]
        if 0xD800 <= unit <= 0xDBFF and i + 1 < len(units) and 0xDC00 <= units[i + 1] <= 0xDFFF:
            cp = 0x10000 + ((unit - 0xD800) << 10) + (units[i + 1] - 0xDC00)
            out.append(chr(cp))
            i += 2
            continue
        out.append(chr(unit))
        i += 1
    return "".join(out)


def _strip_bom(text: str) -> str:
    return text[1:] if text.startswith("\ufeff") else text
