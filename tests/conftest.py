"""Shared fixtures for the bridge tests."""

from typing import Optional

import pytest

from gnss_bridge.metrics import MetricSnapshot
from gnss_bridge.models import ReceiverStatus

GOOD_FIELDS = {
    "ant": "OK",
    "gpsinfo": "8/12",
    "bdinfo": "3/5",
    "glinfo": "0/0",
    "lat": "N4915.00000",
    "long": "E00715.00000",
    "alt": "200 m",
}


def make_document(fields: Optional[dict] = None, root: str = "gnss") -> str:
    """Render status fields as the receiver's XML document."""
    fields = GOOD_FIELDS if fields is None else fields
    body = "".join(f"<{tag}>{text}</{tag}>" for tag, text in fields.items())
    return f'<?xml version="1.0" encoding="UTF-8"?><{root}>{body}</{root}>'


def make_status(**overrides: str) -> ReceiverStatus:
    """Build a ReceiverStatus from the known-good fields plus overrides."""
    return ReceiverStatus.model_validate({**GOOD_FIELDS, **overrides})


@pytest.fixture
def snapshot():
    return MetricSnapshot()
