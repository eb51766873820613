"""
Content hashes for imported time entries.

The hash covers the fields a user edits in Clockify:
description|start|end|projectId, with missing values as empty strings and
timestamps in Clockify's second-precision UTC format. A stored hash that
matches the incoming entry means the local row is already current.
"""

import hashlib
from datetime import datetime
from typing import Optional

from lifesync.connectors.base import ExternalTimeEntry
from lifesync.utils.time_utils import to_clockify_iso


def generate_time_entry_hash(
    description: Optional[str],
    start_time: Optional[datetime],
    end_time: Optional[datetime],
    project_id: Optional[str],
) -> str:
    content = "|".join([
        description or "",
        to_clockify_iso(start_time) if start_time else "",
        to_clockify_iso(end_time) if end_time else "",
        project_id or "",
    ])
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def hash_external_entry(entry: ExternalTimeEntry) -> str:
    return generate_time_entry_hash(
        entry.description,
        entry.time_interval.start,
        entry.time_interval.end,
        entry.project_id,
    )
