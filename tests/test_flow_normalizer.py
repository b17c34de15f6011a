from datetime import datetime, timezone

import pytest

from app.core.errors import MalformedMessageError
from app.schemas.sessions import DeviceInfo
from app.services.normalization.flow_normalizer import normalize_flow, parse_megabytes

NOW = datetime(2025, 3, 20, 12, 0, tzinfo=timezone.utc)


def test_empty_session_gets_every_default():
    flow = normalize_flow({}, now=NOW)

    assert flow.source_ip == "Unknown"
    assert flow.destination_ip == "Unknown"
    assert flow.protocol == "Unknown"
    assert flow.source_port == 0
    assert flow.destination_port == 0
    assert flow.packets == 0
    assert flow.bytes_transferred == "0.0M"
    assert flow.flags == []
    assert flow.duration == 0.0
    assert flow.classification_hint == "Unknown"
    assert flow.device_info == DeviceInfo()
    assert flow.device_info.hostname == "Unknown"
    assert flow.received_at == NOW


def test_none_is_treated_as_empty_session():
    assert normalize_flow(None, now=NOW).packets == 0


def test_capture_agent_labels_are_mapped():
    flow = normalize_flow(
        {
            "Source IP": "10.0.0.5",
            "Destination IP": "10.0.0.9",
            "Protocol": "TCP",
            "Source Port": "443",
            "Destination Port": "3389",
            "Packets": "12000",
            "Bytes Transferred": "2.1M",
            "Flags": "SYN, ACK,,PSH",
            "Duration": "400.5",
            "Class": "Suspicious",
            "device_info": {"hostname": "ws-01", "os": "Linux"},
            "received_at": "2025-03-20T12:34:56Z",
        },
        now=NOW,
    )

    assert flow.source_ip == "10.0.0.5"
    assert flow.destination_ip == "10.0.0.9"
    assert flow.source_port == 443
    assert flow.destination_port == 3389
    assert flow.packets == 12000
    assert flow.bytes_transferred == "2.1M"
    assert flow.flags == ["SYN", "ACK", "PSH"]
    assert flow.duration == 400.5
    assert flow.classification_hint == "Suspicious"
    assert flow.device_info.hostname == "ws-01"
    assert flow.device_info.agent_version == "Unknown"
    assert flow.received_at == datetime(2025, 3, 20, 12, 34, 56, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "raw",
    [
        {"source_ip": "1.2.3.4", "dst_port": 22, "bytes": "1.5M", "label": "Benign"},
        {"src_ip": "1.2.3.4", "destination_port": "22", "bytes_transferred": "1.5M", "class": "Benign"},
        {"SOURCE-IP": "1.2.3.4", "DstPort": 22.0, "Bytes": "1.5M", "classification": "Benign"},
    ],
)
def test_key_spellings_fold_to_the_same_flow(raw):
    flow = normalize_flow(raw, now=NOW)

    assert flow.source_ip == "1.2.3.4"
    assert flow.destination_port == 22
    assert flow.bytes_transferred == "1.5M"
    assert flow.classification_hint == "Benign"


def test_bad_values_fall_back_instead_of_raising():
    flow = normalize_flow(
        {
            "Packets": "lots",
            "Duration": -5,
            "Source Port": None,
            "Destination Port": "",
            "Flags": 7,
            "device_info": "not-a-dict",
            "received_at": "yesterday",
            "Bytes": {"nested": True},
            "Protocol": ["TCP"],
        },
        now=NOW,
    )

    assert flow.packets == 0
    assert flow.duration == 0.0
    assert flow.source_port == 0
    assert flow.destination_port == 0
    assert flow.flags == []
    assert flow.device_info == DeviceInfo()
    assert flow.received_at == NOW
    assert flow.bytes_transferred == "0.0M"
    assert flow.protocol == "Unknown"


def test_flag_list_is_kept_in_order():
    flow = normalize_flow({"Flags": ["FIN", " ACK ", ""]}, now=NOW)
    assert flow.flags == ["FIN", "ACK"]


def test_extra_device_metadata_is_preserved():
    flow = normalize_flow({"device_info": {"hostname": "edge", "site": "dc-2"}}, now=NOW)
    assert flow.device_info.hostname == "edge"
    assert flow.device_info.model_dump()["site"] == "dc-2"


def test_epoch_timestamp_is_accepted():
    flow = normalize_flow({"received_at": 0}, now=NOW)
    assert flow.received_at == datetime(1970, 1, 1, tzinfo=timezone.utc)


def test_non_object_session_is_a_framing_error():
    with pytest.raises(MalformedMessageError):
        normalize_flow(["not", "an", "object"])


@pytest.mark.parametrize(
    "value, expected",
    [
        ("5.0 M", 5.0),
        ("2.1M", 2.1),
        ("512K", 0.5),
        ("2G", 2048.0),
        ("12", 12.0),
        (7, 7.0),
        ("n/a", 0.0),
        ("-3M", 0.0),
        (None, 0.0),
    ],
)
def test_parse_megabytes(value, expected):
    assert parse_megabytes(value) == pytest.approx(expected)
