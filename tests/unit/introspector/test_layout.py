"""Tests for box layout scanning and header signatures."""

import struct
from pathlib import Path

from vidnorm.introspector.layout import ContainerSignature, is_faststart, read_signature


def _box(box_type: str, payload: bytes = b"") -> bytes:
    return struct.pack(">I4s", 8 + len(payload), box_type.encode()) + payload


def _write(tmp_path: Path, *boxes: bytes) -> Path:
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"".join(boxes))
    return path


class TestIsFaststart:
    """Tests for is_faststart."""

    def test_moov_first(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path, _box("ftyp", b"isom"), _box("moov", b"\0" * 16), _box("mdat")
        )
        assert is_faststart(path) is True

    def test_mdat_first(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path, _box("ftyp", b"isom"), _box("mdat", b"\0" * 64), _box("moov")
        )
        assert is_faststart(path) is False

    def test_large_size_box(self, tmp_path: Path) -> None:
        """A size of 1 means a 64-bit size follows the type."""
        mdat = struct.pack(">I4sQ", 1, b"mdat", 16 + 4) + b"\0" * 4
        path = _write(tmp_path, _box("ftyp"), mdat, _box("moov"))
        assert is_faststart(path) is False

    def test_box_to_end_of_file(self, tmp_path: Path) -> None:
        """A size of 0 extends the box to the end of the file."""
        mdat = struct.pack(">I4s", 0, b"mdat") + b"\0" * 32
        path = _write(tmp_path, _box("ftyp"), mdat)
        assert is_faststart(path) is False

    def test_truncated_file(self, tmp_path: Path) -> None:
        path = _write(tmp_path, b"\0\0\0")
        assert is_faststart(path) is False

    def test_corrupt_size(self, tmp_path: Path) -> None:
        path = _write(tmp_path, struct.pack(">I4s", 4, b"moov"))
        assert is_faststart(path) is False

    def test_missing_file(self, tmp_path: Path, caplog) -> None:
        assert is_faststart(tmp_path / "missing.mp4") is False
        assert "Could not read box layout" in caplog.text


def _ebml(*elements: bytes) -> bytes:
    body = b"".join(elements)
    return b"\x1a\x45\xdf\xa3" + bytes([0x80 | len(body)]) + body


def _transport(packet_size: int, sync_offset: int, count: int = 6) -> bytes:
    packet = bytearray(packet_size)
    packet[sync_offset] = 0x47
    return bytes(packet) * count


class TestReadSignature:
    """Tests for read_signature."""

    def _read(self, tmp_path: Path, data: bytes):
        path = tmp_path / "upload.bin"
        path.write_bytes(data)
        return read_signature(path)

    def test_webm_doctype(self, tmp_path: Path) -> None:
        data = _ebml(b"\x42\x86\x81\x01", b"\x42\x82\x84webm")
        assert self._read(tmp_path, data) == ContainerSignature(doctype="webm")

    def test_matroska_doctype(self, tmp_path: Path) -> None:
        data = _ebml(b"\x42\x82\x88matroska", b"\x42\x87\x81\x04")
        assert self._read(tmp_path, data).doctype == "matroska"

    def test_eight_byte_size(self, tmp_path: Path) -> None:
        """Sizes may use the long form even for short values."""
        doctype = b"\x42\x82\x01" + (4).to_bytes(7, "big") + b"webm"
        assert self._read(tmp_path, _ebml(doctype)).doctype == "webm"

    def test_header_without_doctype(self, tmp_path: Path) -> None:
        assert self._read(tmp_path, _ebml(b"\x42\x86\x81\x01")).doctype is None

    def test_truncated_header(self, tmp_path: Path) -> None:
        assert self._read(tmp_path, b"\x1a\x45\xdf\xa3\x8b\x42").doctype is None

    def test_plain_transport_stream(self, tmp_path: Path) -> None:
        signature = self._read(tmp_path, _transport(188, 0))
        assert signature == ContainerSignature(ts_packet_size=188)

    def test_bdav_transport_stream(self, tmp_path: Path) -> None:
        assert self._read(tmp_path, _transport(192, 4)).ts_packet_size == 192

    def test_too_short_for_packet_size(self, tmp_path: Path) -> None:
        assert self._read(tmp_path, _transport(188, 0, count=2)).ts_packet_size is None

    def test_isobmff_has_no_signature(self, tmp_path: Path) -> None:
        data = _box("ftyp", b"isom") + _box("moov")
        assert self._read(tmp_path, data) == ContainerSignature()

    def test_missing_file(self, tmp_path: Path, caplog) -> None:
        assert read_signature(tmp_path / "missing.mkv") == ContainerSignature()
        assert "Could not read header" in caplog.text
