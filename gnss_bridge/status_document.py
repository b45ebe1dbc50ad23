"""Deserialize the receiver's XML status document into a ReceiverStatus.

Expected shape (root element name varies between firmware builds):

    <gnss>
      <ant>OK</ant>
      <svused>11</svused>           (optional)
      <gpsinfo>8/12</gpsinfo>
      <bdinfo>3/5</bdinfo>
      <glinfo>0/0</glinfo>
      <lat>N 4915.00000</lat>
      <long>E 00715.00000</long>
      <alt>200 m</alt>
    </gnss>
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from pydantic import ValidationError

from gnss_bridge.exceptions import DeserializeError
from gnss_bridge.models import ReceiverStatus

logger = logging.getLogger(__name__)

_counters: dict[str, int] = {
    "documents_parsed": 0,
    "document_parse_errors": 0,
}


def get_document_counters() -> dict[str, int]:
    """Return a copy of document diagnostic counters."""
    return dict(_counters)


def parse_status_document(raw_xml: str) -> ReceiverStatus:
    """Parse a status document body.

    Only the direct children of the root element are read; their text is
    whitespace-stripped and kept verbatim otherwise. Unknown elements are
    ignored and an empty ``svused`` counts as absent.

    Args:
        raw_xml: The response body, already decoded as UTF-8.

    Returns:
        The ReceiverStatus record.

    Raises:
        DeserializeError: If the body is not XML or required elements are
            missing.
    """
    try:
        root = ET.fromstring(raw_xml)
    except ET.ParseError as err:
        _counters["document_parse_errors"] += 1
        raise DeserializeError(f"status document is not well-formed XML: {err}") from err

    fields: dict[str, str] = {}
    for child in root:
        fields[child.tag] = (child.text or "").strip()

    if fields.get("svused") == "":
        del fields["svused"]

    try:
        status = ReceiverStatus.model_validate(fields)
    except ValidationError as err:
        _counters["document_parse_errors"] += 1
        problems = "; ".join(
            f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in err.errors()
        )
        raise DeserializeError(f"status document does not match schema: {problems}") from err

    _counters["documents_parsed"] += 1
    logger.debug("Decoded status document: %s", status)
    return status
