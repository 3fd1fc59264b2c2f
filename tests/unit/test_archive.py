import zipfile
from pathlib import Path

import pytest

from wheelhouse.archive import (
    MalformedArchiveError,
    MissingDescriptorError,
    MissingFieldError,
    PackageIdentity,
    extract_identity,
    open_archive,
    parse_descriptor,
)


def _write_archive(path: Path, entries: dict[str, str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return path


def test_arch_001_extract_identity_reads_name_and_version(tmp_path: Path) -> None:
    path = _write_archive(
        tmp_path / "foo_bar-1.0-py3-none-any.whl",
        {
            "foo_bar/__init__.py": "",
            "foo_bar-1.0.dist-info/WHEEL": "Wheel-Version: 1.0\n",
            "foo_bar-1.0.dist-info/METADATA": (
                "Metadata-Version: 2.1\nName: Foo-Bar\nVersion: 1.0\nSummary: demo\n"
            ),
        },
    )

    with open_archive(path) as archive:
        identity = extract_identity(archive)

    assert identity == PackageIdentity(name="Foo-Bar", version="1.0")


def test_arch_002_parse_descriptor_keeps_first_occurrence() -> None:
    identity = parse_descriptor(
        "Name: first\r\nVersion: 1.0\r\nName: second\r\nVersion: 2.0\r\n"
    )
    assert identity == PackageIdentity(name="first", version="1.0")


def test_arch_003_parse_descriptor_ignores_lines_without_exact_prefix() -> None:
    identity = parse_descriptor(
        "\n".join(
            [
                "Metadata-Version: 2.1",
                "Name:no-space",
                "name: lower",
                "Name: real",
                "Summary: Version: 9",
                "Version: 3.1",
            ]
        )
    )
    assert identity == PackageIdentity(name="real", version="3.1")


def test_arch_004_missing_version_raises_missing_field() -> None:
    with pytest.raises(MissingFieldError) as excinfo:
        parse_descriptor("Name: only-name\n")
    assert excinfo.value.field == "version"
    assert excinfo.value.kind == "missing_field"


def test_arch_005_missing_name_raises_missing_field() -> None:
    with pytest.raises(MissingFieldError) as excinfo:
        parse_descriptor("Version: 1.0\n")
    assert excinfo.value.field == "name"


def test_arch_006_archive_without_descriptor_raises(tmp_path: Path) -> None:
    path = _write_archive(
        tmp_path / "pkg-1.0-py3-none-any.whl",
        {
            "pkg/__init__.py": "",
            "pkg-1.0.dist-info/WHEEL": "Wheel-Version: 1.0\n",
            "pkg/METADATA": "Name: decoy\nVersion: 0\n",
        },
    )

    with open_archive(path) as archive:
        with pytest.raises(MissingDescriptorError) as excinfo:
            extract_identity(archive)
    assert excinfo.value.kind == "missing_descriptor"


def test_arch_007_open_archive_rejects_non_zip(tmp_path: Path) -> None:
    path = tmp_path / "broken-1.0-py3-none-any.whl"
    path.write_bytes(b"this is not a zip file")

    with pytest.raises(MalformedArchiveError) as excinfo:
        open_archive(path)
    assert excinfo.value.kind == "malformed_archive"


def test_arch_008_corrupt_descriptor_entry_raises_malformed(tmp_path: Path) -> None:
    path = tmp_path / "corrupt-1.0-py3-none-any.whl"
    content = b"Name: corrupt\nVersion: 1.0\n" * 64
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("corrupt-1.0.dist-info/METADATA", content)
    data = bytearray(path.read_bytes())
    # Damage the compressed payload right after the first local file header.
    header_end = 30 + len("corrupt-1.0.dist-info/METADATA")
    for offset in range(header_end, header_end + 16):
        data[offset] ^= 0xFF
    path.write_bytes(bytes(data))

    with open_archive(path) as archive:
        with pytest.raises(MalformedArchiveError):
            extract_identity(archive)


def test_arch_009_undecodable_bytes_do_not_fail_extraction(tmp_path: Path) -> None:
    path = tmp_path / "latin-1.0-py3-none-any.whl"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(
            "latin-1.0.dist-info/METADATA",
            b"Name: latin\nVersion: 1.0\nAuthor: Jos\xe9\n",
        )

    with open_archive(path) as archive:
        assert extract_identity(archive) == PackageIdentity(name="latin", version="1.0")


def _patch_central_entry(path: Path, entry_name: str, offset: int, value: int) -> None:
    """Overwrite a little-endian 16-bit field of one central directory record."""
    data = bytearray(path.read_bytes())
    index = data.find(b"PK\x01\x02")
    while index != -1:
        name_length = int.from_bytes(data[index + 28 : index + 30], "little")
        name = bytes(data[index + 46 : index + 46 + name_length]).decode("utf-8")
        if name == entry_name:
            data[index + offset : index + offset + 2] = value.to_bytes(2, "little")
            path.write_bytes(bytes(data))
            return
        index = data.find(b"PK\x01\x02", index + 4)
    raise AssertionError(f"entry not found: {entry_name}")


def test_arch_010_encrypted_descriptor_raises_malformed(tmp_path: Path) -> None:
    path = _write_archive(
        tmp_path / "enc-1.0-py3-none-any.whl",
        {"enc-1.0.dist-info/METADATA": "Name: enc\nVersion: 1.0\n"},
    )
    # General purpose flag bit 0 marks the entry as encrypted.
    _patch_central_entry(path, "enc-1.0.dist-info/METADATA", offset=8, value=0x1)

    with open_archive(path) as archive:
        with pytest.raises(MalformedArchiveError) as excinfo:
            extract_identity(archive)
    assert "encrypted" in str(excinfo.value)


def test_arch_011_unsupported_compression_raises_malformed(tmp_path: Path) -> None:
    path = _write_archive(
        tmp_path / "aes-1.0-py3-none-any.whl",
        {"aes-1.0.dist-info/METADATA": "Name: aes\nVersion: 1.0\n"},
    )
    # Method 99 is AES encryption, which zipfile cannot decompress.
    _patch_central_entry(path, "aes-1.0.dist-info/METADATA", offset=10, value=99)

    with open_archive(path) as archive:
        with pytest.raises(MalformedArchiveError):
            extract_identity(archive)


def test_arch_012_corrupt_lzma_entry_raises_malformed(tmp_path: Path) -> None:
    path = tmp_path / "lzma-1.0-py3-none-any.whl"
    entry_name = "lzma-1.0.dist-info/METADATA"
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_LZMA) as archive:
        archive.writestr(entry_name, b"Name: lzma\nVersion: 1.0\n" * 64)
    data = bytearray(path.read_bytes())
    # Skip the local header and the 4-byte LZMA properties header.
    payload_start = 30 + len(entry_name) + 9
    for offset in range(payload_start, payload_start + 16):
        data[offset] ^= 0xFF
    path.write_bytes(bytes(data))

    with open_archive(path) as archive:
        with pytest.raises(MalformedArchiveError):
            extract_identity(archive)


def test_arch_013_parse_descriptor_splits_on_newline_only() -> None:
    identity = parse_descriptor(
        "Name: real\r\n"
        "Summary: a\x0cName: form-feed\x85Version: 0 x\n"
        "Version: 2.0\n"
    )
    assert identity == PackageIdentity(name="real", version="2.0")


def test_arch_014_parse_descriptor_ignores_fields_hidden_after_separators() -> None:
    with pytest.raises(MissingFieldError) as excinfo:
        parse_descriptor("Summary: x\x0bName: hidden\nVersion: 1.0\n")
    assert excinfo.value.field == "name"
