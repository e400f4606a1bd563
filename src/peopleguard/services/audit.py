"""
peopleguard.services.audit

Audit trail presentation helpers.

Responsibilities:
- Mask PII (IP addresses, password/token/email values) for the audit viewer.
- Render CSV exports of the filtered trail.
"""

from __future__ import annotations

import csv
import io
import re

from peopleguard.db.models import AuditLog

EXPORT_LIMIT = 10_000
EXPORT_HEADERS = [
    "User",
    "Entity Type",
    "Entity ID",
    "Action",
    "Endpoint",
    "HTTP Method",
    "Status",
    "IP Address",
    "Timestamp",
]

_MASKS = [
    (re.compile(r'"password"\s*:\s*"[^"]*"', re.IGNORECASE), '"password": "***"'),
    (re.compile(r'"token"\s*:\s*"[^"]*"', re.IGNORECASE), '"token": "***"'),
    (re.compile(r'"email"\s*:\s*"[^"]*"', re.IGNORECASE), '"email": "***@***.***"'),
]


def mask_ip(ip: str | None) -> str | None:
    if not ip:
        return ip
    parts = ip.split(".")
    if len(parts) == 4:
        return f"{parts[0]}.{parts[1]}.*.*"
    # IPv6 and anything else: keep the first two groups.
    groups = ip.split(":")
    return ":".join(groups[:2] + ["*"]) if len(groups) > 2 else "***"


def mask_details(raw: str | None) -> str | None:
    if not raw:
        return raw
    masked = raw
    for pattern, replacement in _MASKS:
        masked = pattern.sub(replacement, masked)
    return masked


def export_csv(rows: list[AuditLog]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(EXPORT_HEADERS)
    for r in rows:
        writer.writerow(
            [
                r.user_name,
                r.entity_type,
                r.entity_id,
                r.action,
                r.endpoint or "",
                r.http_method or "",
                r.status_code if r.status_code is not None else "",
                mask_ip(r.ip_address) or "",
                r.timestamp.isoformat(),
            ]
        )
    return buf.getvalue()
