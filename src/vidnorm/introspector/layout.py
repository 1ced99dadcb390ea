"""Container details read straight from the file.

ffprobe does not report where the ``moov`` index sits relative to the
``mdat`` payload, nor which member of the Matroska or MPEG-TS family a
file is, so the relevant headers are read directly.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

# Upper bound on boxes walked before giving up (malformed files)
_MAX_BOXES = 4096


def _iter_box_types(f: BinaryIO, file_size: int):
    offset = 0
    for _ in range(_MAX_BOXES):
        if offset + 8 > file_size:
            return
        f.seek(offset)
        header = f.read(8)
        if len(header) < 8:
            return
        size, box_type = struct.unpack(">I4s", header)
        if size == 1:
            large = f.read(8)
            if len(large) < 8:
                return
            size = struct.unpack(">Q", large)[0]
        elif size == 0:
            size = file_size - offset
        if size < 8:
            return
        yield box_type.decode("latin-1")
        offset += size


def is_faststart(path: Path) -> bool:
    """Check whether an ISO-BMFF file has its moov box before mdat.

    Args:
        path: Path to an MP4/MOV/3GP file.

    Returns:
        True if ``moov`` precedes ``mdat`` (or there is no ``mdat``);
        False if ``mdat`` comes first or the layout cannot be read.
    """
    try:
        file_size = path.stat().st_size
        with path.open("rb") as f:
            for box_type in _iter_box_types(f, file_size):
                if box_type == "moov":
                    return True
                if box_type == "mdat":
                    return False
    except OSError as e:
        logger.warning("Could not read box layout of %s: %s", path, e)
        return False
    return False


# =============================================================================
# Header signatures
# =============================================================================

_HEADER_BYTES = 4096
_EBML_MAGIC = b"\x1a\x45\xdf\xa3"
_EBML_DOCTYPE_ID = 0x4282
_TS_SYNC = 0x47
# Packets checked for a sync byte before a packet size is trusted
_TS_SYNC_PACKETS = 4
# (packet size, offset of the sync byte within the packet)
_TS_PACKET_LAYOUTS = ((188, 0), (192, 4), (204, 0))


@dataclass(frozen=True)
class ContainerSignature:
    """Identity details read from a file header that ffprobe does not report.

    ffprobe names the Matroska and MPEG-TS families without saying which
    member a file is; the EBML DocType and the transport packet size do.
    """

    doctype: str | None = None
    """EBML DocType of a Matroska file, e.g. ``matroska`` or ``webm``."""

    ts_packet_size: int | None = None
    """188 for plain transport streams, 192 for BDAV (M2TS/MTS)."""


def _read_vint(buf: bytes, pos: int, keep_marker: bool) -> tuple[int, int] | None:
    """Decode an EBML variable-length integer at pos.

    Element IDs keep their length marker bit, data sizes drop it.
    """
    if pos >= len(buf) or buf[pos] == 0:
        return None
    first = buf[pos]
    length = 8 - first.bit_length() + 1
    if pos + length > len(buf):
        return None
    value = first if keep_marker else first & (0xFF >> length)
    for byte in buf[pos + 1 : pos + length]:
        value = (value << 8) | byte
    return value, pos + length


def _ebml_doctype(head: bytes) -> str | None:
    if not head.startswith(_EBML_MAGIC):
        return None
    size = _read_vint(head, len(_EBML_MAGIC), keep_marker=False)
    if size is None:
        return None
    header_size, pos = size
    end = min(pos + header_size, len(head))
    while pos < end:
        element = _read_vint(head, pos, keep_marker=True)
        if element is None:
            return None
        element_id, pos = element
        size = _read_vint(head, pos, keep_marker=False)
        if size is None:
            return None
        data_size, pos = size
        if element_id == _EBML_DOCTYPE_ID:
            value = head[pos : pos + data_size].rstrip(b"\0")
            return value.decode("ascii", "replace").casefold()
        pos += data_size
    return None


def _ts_packet_size(head: bytes) -> int | None:
    for size, offset in _TS_PACKET_LAYOUTS:
        positions = [offset + n * size for n in range(_TS_SYNC_PACKETS)]
        if positions[-1] < len(head) and all(head[p] == _TS_SYNC for p in positions):
            return size
    return None


def read_signature(path: Path) -> ContainerSignature:
    """Read the Matroska DocType and transport packet size of a file.

    Fields that do not apply, or that cannot be read, are None.
    """
    try:
        with path.open("rb") as f:
            head = f.read(_HEADER_BYTES)
    except OSError as e:
        logger.warning("Could not read header of %s: %s", path, e)
        return ContainerSignature()
    return ContainerSignature(
        doctype=_ebml_doctype(head), ts_packet_size=_ts_packet_size(head)
    )
