"""Utility modules."""

from eventcraft.utils.file_upload import (
    content_length_exceeds_limit,
    enforce_upload_limit,
    get_upload_file_size,
)
from eventcraft.utils.pagination import (
    LimitOffset,
    get_limit_offset,
)
