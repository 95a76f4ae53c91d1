"""
ID generation utilities for graph elements and stored projects.
"""

import random
import re
import string
import uuid
from datetime import datetime

# p-YYYYMMDD-hhmmss-xxxx
PROJECT_ID_PATTERN = re.compile(r"^p-\d{8}-\d{6}-[a-z0-9]{4}$")


def new_element_id() -> str:
    """
    Generate an opaque id for a node or edge.

    Ids are 8 lowercase hex characters and never contain a dash, so they can
    be embedded in display ids without ambiguity.
    """
    return uuid.uuid4().hex[:8]


def new_project_id() -> str:
    """Generate a project ID stamped with the local creation time."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=4))
    return datetime.now().strftime("p-%Y%m%d-%H%M%S-") + suffix


def is_valid_project_id(project_id: str) -> bool:
    """Check a project ID before it is used as a directory name."""
    return bool(PROJECT_ID_PATTERN.match(project_id))
