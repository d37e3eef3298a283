"""
Enumerate report documents inside a downloaded artifact.

Artifacts arrive as zip archives. Only ``.xml`` members are considered test
reports; a payload that is not an archive but looks like XML text is
returned as a single document.
"""

from __future__ import annotations

import io
import logging
import zipfile

logger = logging.getLogger(__name__)

# Members larger than this are skipped rather than decoded into memory
MAX_MEMBER_BYTES = 64 * 1024 * 1024


def _decode(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")


def iter_report_documents(payload: bytes) -> list[str]:
    """
    Return the XML documents contained in an artifact payload.

    Args:
        payload: Raw artifact bytes (zip archive or plain XML)

    Returns:
        Decoded documents in archive order; empty if none are found
    """
    buffer = io.BytesIO(payload)
    if not zipfile.is_zipfile(buffer):
        text = _decode(payload)
        return [text] if text.lstrip().startswith("<") else []

    documents: list[str] = []
    try:
        with zipfile.ZipFile(buffer) as archive:
            for info in archive.infolist():
                if info.is_dir() or not info.filename.lower().endswith(".xml"):
                    continue
                if info.file_size > MAX_MEMBER_BYTES:
                    logger.warning(
                        "Skipping oversized report %s (%d bytes)", info.filename, info.file_size
                    )
                    continue
                documents.append(_decode(archive.read(info)))
    except (zipfile.BadZipFile, OSError) as e:
        logger.warning("Failed to extract artifact archive: %s", e)
        return []

    if not documents:
        logger.debug("No XML files found in artifact archive")
    return documents
