# backend/app/services/normalization/flow_normalizer.py
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from app.core.errors import MalformedMessageError
from app.schemas.sessions import DeviceInfo, NormalizedFlow

# --------------------------------------------------------
# Key aliases
#
# Keys are compared after _fold(): lowercase, no spaces/underscores/dashes.
# "Source IP", "source_ip" and "sourceIp" all fold to "sourceip".
# --------------------------------------------------------
FIELD_ALIASES: Dict[str, tuple] = {
    "source_ip": ("sourceip", "srcip", "src", "sourceaddress", "srcaddr"),
    "destination_ip": ("destinationip", "dstip", "dst", "destip", "destinationaddress", "dstaddr"),
    "protocol": ("protocol", "proto"),
    "source_port": ("sourceport", "srcport", "sport"),
    "destination_port": ("destinationport", "dstport", "dport", "destport"),
    "packets": ("packets", "packetcount", "pkts", "totalpackets"),
    "bytes_transferred": ("bytestransferred", "bytes", "totalbytes", "volume"),
    "flags": ("flags", "tcpflags"),
    "duration": ("duration", "durationseconds", "flowduration"),
    "classification_hint": ("class", "classificationhint", "classification", "label"),
    "device_info": ("deviceinfo", "device"),
    "received_at": ("receivedat", "timestamp", "time"),
}

DEFAULT_BYTES = "0.0M"
UNKNOWN = "Unknown"

_MAGNITUDE_RE = re.compile(r"^\s*([-+]?\d*\.?\d+(?:e[-+]?\d+)?)\s*([kmgt]?)(?:i?b)?", re.IGNORECASE)
_UNIT_TO_MEGABYTES = {"": 1.0, "k": 1.0 / 1024, "m": 1.0, "g": 1024.0, "t": 1024.0 * 1024.0}


def _fold(key: Any) -> str:
    return re.sub(r"[\s_\-]", "", str(key)).lower()


def _lookup(index: Mapping[str, Any], field: str) -> Any:
    """First non-empty value among the aliases of `field`, else None."""
    for alias in FIELD_ALIASES[field]:
        value = index.get(alias)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


# --------------------------------------------------------
# Per-field extraction (each one total: bad input -> default)
# --------------------------------------------------------

def _to_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def _to_int(value: Any) -> int:
    return int(_to_float(value))


def _to_str(value: Any, default: str = UNKNOWN) -> str:
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return default
    text = str(value).strip()
    return text or default


def _to_flags(value: Any) -> List[str]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(v) for v in value if v is not None]
    else:
        return []
    return [item.strip() for item in items if item.strip()]


def _to_device_info(value: Any) -> DeviceInfo:
    if not isinstance(value, Mapping):
        return DeviceInfo()
    known = set(DeviceInfo.model_fields)
    data = {}
    for key, raw in value.items():
        if key in known:
            data[key] = _to_str(raw)
        else:
            data[str(key)] = raw
    return DeviceInfo.model_validate(data)


def _to_timestamp(value: Any, now: datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return now
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return now
    return now


def _to_bytes(value: Any) -> str:
    if value is None or isinstance(value, (bool, dict, list, tuple, set)):
        return DEFAULT_BYTES
    text = str(value).strip()
    return text or DEFAULT_BYTES


def parse_megabytes(value: Any) -> float:
    """
    Leading magnitude of a byte-volume string, in megabytes.
    "5.0 M" -> 5.0, "512K" -> 0.5, "2G" -> 2048.0. A bare number is
    taken as megabytes. Unparseable or negative -> 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return _to_float(value)

    match = _MAGNITUDE_RE.match(str(value))
    if not match:
        return 0.0

    number = _to_float(match.group(1))
    return number * _UNIT_TO_MEGABYTES[match.group(2).lower()]


# --------------------------------------------------------
# Public entry point
# --------------------------------------------------------

def normalize_flow(raw: Optional[Mapping[str, Any]], now: Optional[datetime] = None) -> NormalizedFlow:
    """
    Map a raw session (any key spelling, any value types) onto NormalizedFlow.
    Never fails on missing or odd values; every field gets its default.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise MalformedMessageError(
            f"Raw session must be an object, got {type(raw).__name__}"
        )

    now = now or datetime.now(timezone.utc)
    index = {_fold(k): v for k, v in raw.items()}

    return NormalizedFlow(
        source_ip=_to_str(_lookup(index, "source_ip")),
        destination_ip=_to_str(_lookup(index, "destination_ip")),
        protocol=_to_str(_lookup(index, "protocol")),
        source_port=_to_int(_lookup(index, "source_port")),
        destination_port=_to_int(_lookup(index, "destination_port")),
        packets=_to_int(_lookup(index, "packets")),
        bytes_transferred=_to_bytes(_lookup(index, "bytes_transferred")),
        flags=_to_flags(_lookup(index, "flags")),
        duration=_to_float(_lookup(index, "duration")),
        classification_hint=_to_str(_lookup(index, "classification_hint")),
        device_info=_to_device_info(_lookup(index, "device_info")),
        received_at=_to_timestamp(_lookup(index, "received_at"), now),
    )
