"""Contact exchange (vCard) generation."""

from .vcard import (
    DEFAULT_FALLBACK_TAG,
    VCardContact,
    artifact_file_name,
    build_vcard,
    extract_cluster_id,
    format_contact_name,
    short_cohort_id,
)

__all__ = [
    "DEFAULT_FALLBACK_TAG",
    "VCardContact",
    "artifact_file_name",
    "build_vcard",
    "extract_cluster_id",
    "format_contact_name",
    "short_cohort_id",
]
