import re
from typing import NamedTuple

from core.errors import ValidationError

LABEL_PATTERN = re.compile(r"^[A-Za-z]{1,2}-\d{2}-\d{2}$", re.ASCII)


class LabelParts(NamedTuple):
    aisle: str
    bay: int
    height: int


def normalize_label(label: str) -> str:
    """Strip and upper-case a scanned label, rejecting anything that is not `AA-BB-CC`."""
    value = (label or "").strip()
    # match before upper-casing, which can turn non-ASCII letters into ASCII ones
    if not LABEL_PATTERN.match(value):
        raise ValidationError(f"invalid location label {label!r}", label=label)
    return value.upper()


def parse_label(label: str) -> LabelParts:
    aisle, bay, height = normalize_label(label).split("-")
    return LabelParts(aisle=aisle, bay=int(bay), height=int(height))
