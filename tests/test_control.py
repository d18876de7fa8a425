import pytest
from viewdeb_core.errors import ControlReadError, ReadError
from viewdeb_core.extractors.deb import DebExtractor, parse_control

from conftest import CONTROL_TEXT


def test_parse_control_fields():
    meta = parse_control(CONTROL_TEXT)
    assert meta.package == "hello"
    assert meta.version == "2.10-3"
    assert meta.architecture == "amd64"
    assert meta.maintainer == "Santiago Vila <sanvila@debian.org>"
    assert meta.installed_size == "280"
    assert meta.depends == "libc6 (>= 2.34)"
    assert meta.homepage == "https://www.gnu.org/software/hello/"
    assert meta.recommends is None


def test_description_continuation_lines():
    meta = parse_control(CONTROL_TEXT)
    assert meta.description == (
        "example package based on GNU hello\n"
        "The GNU hello program produces a familiar, friendly greeting.\n"
        ".\n"
        "Seriously, though: this is an example."
    )


def test_only_description_accumulates_continuations():
    text = "Package: foo\nDepends: libc6,\n libfoo1\nDescription: short\n long line\n"
    meta = parse_control(text)
    assert meta.depends == "libc6,"
    assert meta.description == "short\nlong line"


def test_blank_line_resets_current_field():
    text = "Description: short\n\n continuation after blank\n"
    assert parse_control(text).description == "short"


def test_value_keeps_text_after_first_colon():
    meta = parse_control("Homepage: https://example.org:8080/x\n")
    assert meta.homepage == "https://example.org:8080/x"


def test_unknown_fields_and_garbage_are_ignored():
    meta = parse_control("X-Custom: yes\nnot a field\nPackage: foo\n")
    assert meta.package == "foo"
    assert "X-Custom" not in meta.to_dict()


@pytest.mark.parametrize("text", ["", "\n\n", "   indented only\n", ":\n", "\x00\x01garbage"])
def test_parse_control_is_total(text):
    meta = parse_control(text)
    assert meta.package == ""
    assert meta.version == ""
    assert meta.architecture == ""


def test_parse_control_is_idempotent():
    assert parse_control(CONTROL_TEXT) == parse_control(CONTROL_TEXT)


def test_metadata_wire_names():
    data = parse_control(CONTROL_TEXT).to_dict()
    assert data["Package"] == "hello"
    assert data["Installed-Size"] == "280"
    assert "Pre-Depends" not in data


def test_parse_metadata_missing_control(tmp_path):
    with pytest.raises(ControlReadError):
        DebExtractor().parse_metadata(str(tmp_path))


def test_read_control_files(tmp_path):
    control_dir = tmp_path / "control"
    extract_dir = tmp_path / "extracted"
    control_dir.mkdir()
    (extract_dir / "DEBIAN").mkdir(parents=True)
    (control_dir / "control").write_text(CONTROL_TEXT)
    (control_dir / "md5sums").write_text("abc  usr/bin/hello\n")
    (extract_dir / "DEBIAN" / "conffiles").write_text("/etc/hello.conf\n")

    files = DebExtractor().read_control_files(str(extract_dir), str(control_dir))
    assert files.control == CONTROL_TEXT
    assert files.md5sums == "abc  usr/bin/hello\n"
    assert files.conffiles == "/etc/hello.conf\n"


def test_read_control_files_optional_absent(tmp_path):
    (tmp_path / "control").write_text("Package: foo\n")
    files = DebExtractor().read_control_files(str(tmp_path / "missing"), str(tmp_path))
    assert files.md5sums is None
    assert files.to_dict() == {"control": "Package: foo\n"}


def test_read_control_files_requires_control(tmp_path):
    with pytest.raises(ControlReadError):
        DebExtractor().read_control_files(str(tmp_path), str(tmp_path))


def test_parse_scripts(tmp_path):
    (tmp_path / "postinst").write_text("#!/bin/sh\necho configured\n")
    (tmp_path / "prerm").write_text("#!/bin/sh\n")
    (tmp_path / "templates").write_bytes(b"\xff\xfe not utf-8")

    scripts = DebExtractor().parse_scripts(str(tmp_path))
    assert scripts.postinst == "#!/bin/sh\necho configured\n"
    assert scripts.prerm == "#!/bin/sh\n"
    assert scripts.preinst is None
    assert scripts.templates is None
    assert set(scripts.to_dict()) == {"postinst", "prerm"}


def test_parse_scripts_missing_dir(tmp_path):
    with pytest.raises(ReadError):
        DebExtractor().parse_scripts(str(tmp_path / "nope"))


@pytest.mark.parametrize("name, expected", [
    ("hello_2.10-3_amd64.deb", True),
    ("debian-installer.UDEB", True),
    ("hello.rpm", False),
])
def test_extractor_supports(name, expected):
    assert DebExtractor().supports(name) is expected


def test_extractor_extensions_are_configurable():
    extractor = DebExtractor(extensions=[".DEB"])
    assert extractor.supports("hello.deb")
    assert not extractor.supports("hello.udeb")
