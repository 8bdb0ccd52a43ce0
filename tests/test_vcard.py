"""Tests for the contact file builder and artifact naming."""

from nearr.exchange import (
    VCardContact,
    artifact_file_name,
    build_vcard,
    extract_cluster_id,
    format_contact_name,
)


def _cards(document: str):
    return [block for block in document.split("BEGIN:VCARD") if block.strip()]


def test_profession_and_fallback_naming():
    document = build_vcard(
        [
            VCardContact(nickname="Ann", profession="Nurse", display_profession=True, phone_number="+100"),
            VCardContact(nickname="Bo", profession="", display_profession=False, phone_number=""),
        ]
    )

    first, second = _cards(document)
    assert "FN:Ann (Nurse)" in first
    assert "ORG:Nurse" in first
    assert "TEL;TYPE=CELL:+100" in first

    fn_line = next(line for line in second.splitlines() if line.startswith("FN:"))
    assert fn_line.endswith("NEARR")
    assert "ORG:" not in second
    assert "TEL" not in second


def test_hidden_profession_uses_fallback_tag():
    contact = VCardContact(nickname="Cy", profession="Chef", display_profession=False)
    assert format_contact_name(contact) == "Cy NEARR"
    assert format_contact_name(contact, fallback_tag="CLUB") == "Cy CLUB"


def test_missing_nickname_defaults():
    assert format_contact_name(VCardContact(nickname="  ")) == "Unknown NEARR"


def test_document_layout_is_deterministic():
    contacts = [
        VCardContact(nickname="Ann", profession="Nurse", display_profession=True, phone_number="+100"),
        VCardContact(nickname="Bo", phone_number="+200"),
    ]
    document = build_vcard(contacts)

    assert document == build_vcard(list(contacts))
    assert document.splitlines() == [
        "BEGIN:VCARD",
        "VERSION:3.0",
        "FN:Ann (Nurse)",
        "N:;Ann (Nurse);;;",
        "ORG:Nurse",
        "TEL;TYPE=CELL:+100",
        "END:VCARD",
        "BEGIN:VCARD",
        "VERSION:3.0",
        "FN:Bo NEARR",
        "N:;Bo NEARR;;;",
        "TEL;TYPE=CELL:+200",
        "END:VCARD",
    ]
    assert document == document.rstrip()


def test_special_characters_are_escaped():
    document = build_vcard([VCardContact(nickname="Lee; Jr", profession="R&D, Labs", display_profession=True)])
    assert "FN:Lee\\; Jr (R&D\\, Labs)" in document
    assert "ORG:R&D\\, Labs" in document


def test_empty_member_list():
    assert build_vcard([]) == ""


def test_artifact_name_round_trip():
    name = artifact_file_name(42, "0f1e2d3c-4b5a-6978-8695-a4b3c2d1e0f9")
    assert name == "Cluster_Contacts_C_42_0f1e2d3c.vcf"
    assert extract_cluster_id(name) == 42


def test_artifact_name_changes_with_each_refill():
    cohort_id = "0f1e2d3c-4b5a-6978-8695-a4b3c2d1e0f9"
    assert artifact_file_name(42, cohort_id, 1) == "Cluster_Contacts_C_42_0f1e2d3c.vcf"
    refilled = artifact_file_name(42, cohort_id, 3)
    assert refilled == "Cluster_Contacts_C_42_0f1e2d3c-3.vcf"
    assert extract_cluster_id(refilled) == 42


def test_extract_cluster_id_rejects_other_names():
    assert extract_cluster_id("contacts.vcf") is None
    assert extract_cluster_id("") is None
