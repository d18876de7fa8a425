import pytest
from viewdeb_core.extractors.classifier import MagicClassifier, PathHeuristicClassifier, is_desktop_file


@pytest.fixture
def classifier():
    return PathHeuristicClassifier()


@pytest.mark.parametrize("path", [
    "usr/lib/libfoo.so",
    "usr/lib/x86_64-linux-gnu/libfoo.a",
    "lib/libtool.la",
    "opt/vendor/obj/main.o",
    "/usr/lib/libfoo.so",
])
def test_object_files_in_binary_dirs(classifier, path):
    assert classifier.is_likely_elf(path) is True


@pytest.mark.parametrize("path", [
    "usr/bin/readme.txt",
    "usr/bin/icon.PNG",
    "usr/lib/foo/config.json",
    "usr/lib/systemd/system/foo.service",
    "opt/app/share/app.desktop",
    "usr/bin/helper.sh",
    "usr/lib/python3/dist-packages/foo.py",
])
def test_non_binary_extensions_in_binary_dirs(classifier, path):
    assert classifier.is_likely_elf(path) is False


@pytest.mark.parametrize("path", [
    "usr/bin/hello",
    "bin/ls",
    "sbin/init",
    "usr/local/sbin/tool",
    "usr/libexec/helper",
    "lib64/ld-linux-x86-64.so.2",
    "/usr/bin/hello",
])
def test_binary_dirs_default_positive(classifier, path):
    assert classifier.is_likely_elf(path) is True


@pytest.mark.parametrize("path", [
    "opt/myapp/app",
    "srv/thing/daemon",
    "var/lib/foo/Server",
    "home/runner",
    "usr/share/cc-switch/CC-SWITCH",
])
def test_generic_executable_names(classifier, path):
    assert classifier.is_likely_elf(path) is True


@pytest.mark.parametrize("path", [
    "usr/share/doc/hello/copyright",
    "etc/hello.conf",
    "usr/share/hello/application",
    "usr/binary/tool",
])
def test_everything_else_is_negative(classifier, path):
    assert classifier.is_likely_elf(path) is False


def test_classification_is_deterministic(classifier):
    results = {classifier.is_likely_elf("usr/lib/libfoo.so.1") for _ in range(10)}
    assert results == {True}


def test_desktop_detection():
    assert is_desktop_file("usr/share/applications/hello.desktop")
    assert not is_desktop_file("usr/share/applications/hello.desktop.in")


def test_magic_classifier_reads_content(tmp_path):
    elf = tmp_path / "tool"
    elf.write_bytes(b"\x7fELF\x02\x01")
    script = tmp_path / "script"
    script.write_text("#!/bin/sh\n")
    classifier = MagicClassifier()

    assert classifier.is_likely_elf("tool", str(elf)) is True
    assert classifier.is_likely_elf("script", str(script)) is False
    assert classifier.is_likely_elf("missing", str(tmp_path / "missing")) is False
    assert classifier.is_likely_elf("tool") is False
