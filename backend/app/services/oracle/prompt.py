# backend/app/services/oracle/prompt.py
from app.schemas.sessions import NormalizedFlow

FLOW_TEMPLATE = """\
- Source IP: {source_ip}
- Destination IP: {destination_ip}
- Protocol: {protocol}
- Source Port: {source_port}
- Destination Port: {destination_port}
- Packets: {packets}
- Bytes Transferred: {bytes_transferred}
- Flags: {flags}
- Duration: {duration} seconds
- Class: {classification_hint}
- Received At: {received_at}
- Device Info:
    - Device ID: {device_id}
    - Hostname: {hostname}
    - IP Address: {device_ip}
    - OS: {os}
    - Agent Version: {agent_version}
"""


def render_flow_prompt(flow: NormalizedFlow) -> str:
    """Fixed text block the oracle is asked to classify."""
    device = flow.device_info
    return FLOW_TEMPLATE.format(
        source_ip=flow.source_ip,
        destination_ip=flow.destination_ip,
        protocol=flow.protocol,
        source_port=flow.source_port,
        destination_port=flow.destination_port,
        packets=flow.packets,
        bytes_transferred=flow.bytes_transferred,
        flags=", ".join(flow.flags) if flow.flags else "None",
        duration=flow.duration,
        classification_hint=flow.classification_hint,
        received_at=flow.received_at.isoformat(),
        device_id=device.device_id,
        hostname=device.hostname,
        device_ip=device.ip_address,
        os=device.os,
        agent_version=device.agent_version,
    )
