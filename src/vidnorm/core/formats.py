"""Container format identification.

ffprobe reports container families (``mov,mp4,m4a,3gp,3g2,mj2``,
``matroska,webm``, ``mpegts``) rather than a single format. These helpers
resolve a family to a concrete ContainerFormat using what the file itself
says: the major brand tag, the EBML DocType or the transport packet size.
"""

from __future__ import annotations

import logging

from vidnorm.domain.models import ContainerFormat

logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS: dict[ContainerFormat, str] = {
    ContainerFormat.MP4: ".mp4",
    ContainerFormat.MOV: ".mov",
    ContainerFormat.THREE_GP: ".3gp",
    ContainerFormat.MKV: ".mkv",
    ContainerFormat.WEBM: ".webm",
    ContainerFormat.AVI: ".avi",
    ContainerFormat.WMV: ".wmv",
    ContainerFormat.TS: ".ts",
    ContainerFormat.MTS: ".mts",
    ContainerFormat.M2TS: ".m2ts",
}

# Extensions accepted for each format
_EXTENSION_ALIASES: dict[str, ContainerFormat] = {
    ".mp4": ContainerFormat.MP4,
    ".m4v": ContainerFormat.MP4,
    ".mov": ContainerFormat.MOV,
    ".qt": ContainerFormat.MOV,
    ".3gp": ContainerFormat.THREE_GP,
    ".3g2": ContainerFormat.THREE_GP,
    ".mkv": ContainerFormat.MKV,
    ".webm": ContainerFormat.WEBM,
    ".avi": ContainerFormat.AVI,
    ".wmv": ContainerFormat.WMV,
    ".asf": ContainerFormat.WMV,
    ".ts": ContainerFormat.TS,
    ".mts": ContainerFormat.MTS,
    ".m2ts": ContainerFormat.M2TS,
}

# Formats vidnorm can write when a remux is required, in preference order
WRITABLE_FORMATS: tuple[ContainerFormat, ...] = (
    ContainerFormat.MP4,
    ContainerFormat.MOV,
    ContainerFormat.MKV,
    ContainerFormat.WEBM,
)

# Formats whose structural index can be relocated with -movflags +faststart
FASTSTART_FORMATS: frozenset[ContainerFormat] = frozenset(
    {ContainerFormat.MP4, ContainerFormat.MOV, ContainerFormat.THREE_GP}
)

_ISOBMFF_FAMILY = frozenset(
    {ContainerFormat.MP4, ContainerFormat.MOV, ContainerFormat.THREE_GP}
)
_MATROSKA_FAMILY = frozenset({ContainerFormat.MKV, ContainerFormat.WEBM})
_MPEGTS_FAMILY = frozenset(
    {ContainerFormat.TS, ContainerFormat.MTS, ContainerFormat.M2TS}
)

# Transport packets with a 4-byte timestamp prefix (Blu-ray, AVCHD)
BDAV_PACKET_SIZE = 192


def format_from_extension(extension: str | None) -> ContainerFormat | None:
    """Map a file extension (with or without dot) to a container format."""
    if not extension:
        return None
    ext = extension.casefold()
    if not ext.startswith("."):
        ext = f".{ext}"
    return _EXTENSION_ALIASES.get(ext)


def family_of(container: ContainerFormat) -> frozenset[ContainerFormat]:
    """Return the set of formats ffprobe cannot tell apart from this one."""
    for family in (_ISOBMFF_FAMILY, _MATROSKA_FAMILY, _MPEGTS_FAMILY):
        if container in family:
            return family
    return frozenset({container})


def resolve_container_format(
    format_name: str | None,
    major_brand: str | None = None,
    doctype: str | None = None,
    ts_packet_size: int | None = None,
    extension_hint: str | None = None,
) -> ContainerFormat | None:
    """Resolve ffprobe's format_name into a concrete container format.

    The family comes from ffprobe and the member from the file itself:
    the ISO-BMFF major brand, the EBML DocType or the transport packet
    size. The extension hint only names which of MTS and M2TS a BDAV
    stream is, since the two are the same byte format.

    Args:
        format_name: ffprobe ``format.format_name``.
        major_brand: ISO-BMFF ``major_brand`` tag, if present.
        doctype: EBML DocType read from a Matroska header.
        ts_packet_size: Transport stream packet size read from the file.
        extension_hint: File extension supplied by the caller.

    Returns:
        ContainerFormat, or None if the family is not recognized.
    """
    if not format_name:
        return None

    names = {n.strip() for n in format_name.casefold().split(",")}

    if "mov" in names or "mp4" in names:
        brand = (major_brand or "").strip().casefold()
        if brand.startswith("3g"):
            return ContainerFormat.THREE_GP
        if brand and brand != "qt":
            return ContainerFormat.MP4
        # No ftyp box at all is classic QuickTime
        return ContainerFormat.MOV

    if "matroska" in names or "webm" in names:
        if (doctype or "").casefold() == "webm":
            return ContainerFormat.WEBM
        return ContainerFormat.MKV

    if "mpegts" in names:
        if ts_packet_size == BDAV_PACKET_SIZE:
            if format_from_extension(extension_hint) == ContainerFormat.MTS:
                return ContainerFormat.MTS
            return ContainerFormat.M2TS
        return ContainerFormat.TS

    if "avi" in names:
        return ContainerFormat.AVI
    if "asf" in names:
        return ContainerFormat.WMV

    logger.debug("Unrecognized container format_name: %s", format_name)
    return None


def extension_matches(container: ContainerFormat, extension: str | None) -> bool:
    """Check whether an extension is consistent with the probed container.

    Extensions naming another member of the same family are not a match;
    the output must carry the probed format's own extension.
    """
    return format_from_extension(extension) == container
