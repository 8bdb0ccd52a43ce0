"""vCard generation for completed cohorts."""

import re
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

DEFAULT_FALLBACK_TAG = "NEARR"
ARTIFACT_PREFIX = "Cluster_Contacts_C_"
ARTIFACT_PATTERN = re.compile(r"C_(\d+)_")


class VCardContact(BaseModel):
    """One member entry of the contact exchange."""

    nickname: Optional[str] = Field(None, description="Public nickname")
    profession: Optional[str] = Field(None, description="Profession, shown only if opted in")
    display_profession: bool = Field(False, description="Member opted in to show profession")
    phone_number: Optional[str] = Field(None, description="Contact number")


def format_contact_name(contact: VCardContact, fallback_tag: str = DEFAULT_FALLBACK_TAG) -> str:
    """Formatted name: "nick (profession)" when shown, otherwise "nick TAG"."""
    nickname = (contact.nickname or "").strip() or "Unknown"
    profession = (contact.profession or "").strip()
    if contact.display_profession and profession:
        return f"{nickname} ({profession})"
    return f"{nickname} {fallback_tag}"


def _escape(value: str) -> str:
    """Escape characters with meaning in vCard 3.0 text values."""
    return (
        value.replace("\\", "\\\\")
        .replace("\n", "\\n")
        .replace(",", "\\,")
        .replace(";", "\\;")
    )


def build_vcard(
    contacts: Iterable[VCardContact],
    fallback_tag: str = DEFAULT_FALLBACK_TAG,
) -> str:
    """
    Build a VCF document with one card per contact, in input order.

    Pure function: identical input lists produce byte-identical output.

    Returns:
        VCF text with trailing whitespace trimmed
    """
    lines: List[str] = []
    for contact in contacts:
        name = _escape(format_contact_name(contact, fallback_tag))
        profession = (contact.profession or "").strip()
        phone = (contact.phone_number or "").strip()

        lines.append("BEGIN:VCARD")
        lines.append("VERSION:3.0")
        lines.append(f"FN:{name}")
        lines.append(f"N:;{name};;;")
        if contact.display_profession and profession:
            lines.append(f"ORG:{_escape(profession)}")
        if phone:
            lines.append(f"TEL;TYPE=CELL:{phone}")
        lines.append("END:VCARD")

    return "\n".join(lines).strip()


def short_cohort_id(cohort_id: str) -> str:
    """First 8 hex characters of a cohort id."""
    return cohort_id.replace("-", "")[:8]


def artifact_file_name(cluster_id: int, cohort_id: str, fill_cycle: int = 1) -> str:
    """Object name of a cohort's exchange artifact.

    Derived from the cohort id and fill cycle, so a retried upload overwrites
    the same object while a file built before a leave and refill never
    replaces the current one.
    """
    short = short_cohort_id(cohort_id)
    if fill_cycle > 1:
        short = f"{short}-{fill_cycle}"
    return f"{ARTIFACT_PREFIX}{cluster_id}_{short}.vcf"


def extract_cluster_id(file_name: str) -> Optional[int]:
    """Parse the cluster id between "C_" and the next underscore."""
    match = ARTIFACT_PATTERN.search(file_name or "")
    if match:
        return int(match.group(1))
    return None
