"""Tests for AdapterPaths resolution."""

import sys

import pytest

from notch_nowplaying.adapter.locator import FRAMEWORK_NAME, SCRIPT_NAME, AdapterPaths
from notch_nowplaying.config import ClientConfig
from notch_nowplaying.exceptions import AdapterNotFoundError


@pytest.fixture()
def adapter_dir(tmp_path):
    (tmp_path / SCRIPT_NAME).write_text("#!/usr/bin/perl\n")
    (tmp_path / FRAMEWORK_NAME).mkdir()
    return tmp_path


class TestAdapterPaths:
    def test_resolve_from_adapter_dir(self, adapter_dir):
        paths = AdapterPaths.resolve(sys.executable, adapter_dir=str(adapter_dir))
        assert paths.script == str(adapter_dir / SCRIPT_NAME)
        assert paths.framework == str(adapter_dir / FRAMEWORK_NAME)
        assert paths.interpreter == sys.executable

    def test_explicit_paths_win(self, adapter_dir, tmp_path_factory):
        other = tmp_path_factory.mktemp("other")
        script = other / "custom.pl"
        script.write_text("")
        paths = AdapterPaths.resolve(
            sys.executable,
            script=str(script),
            adapter_dir=str(adapter_dir),
        )
        assert paths.script == str(script)

    def test_missing_script(self, tmp_path):
        (tmp_path / FRAMEWORK_NAME).mkdir()
        with pytest.raises(AdapterNotFoundError, match="script"):
            AdapterPaths.resolve(sys.executable, adapter_dir=str(tmp_path))

    def test_missing_framework(self, tmp_path):
        (tmp_path / SCRIPT_NAME).write_text("")
        with pytest.raises(AdapterNotFoundError, match="framework"):
            AdapterPaths.resolve(sys.executable, adapter_dir=str(tmp_path))

    def test_missing_interpreter(self, adapter_dir):
        with pytest.raises(AdapterNotFoundError, match="Interpreter"):
            AdapterPaths.resolve("/nonexistent/perl", adapter_dir=str(adapter_dir))

    def test_from_config(self, adapter_dir):
        config = ClientConfig(
            interpreter=sys.executable,
            adapter_script=str(adapter_dir / SCRIPT_NAME),
            framework_path=str(adapter_dir / FRAMEWORK_NAME),
        )
        paths = AdapterPaths.from_config(config)
        assert paths.framework == str(adapter_dir / FRAMEWORK_NAME)

    def test_command(self):
        paths = AdapterPaths("/usr/bin/perl", "/opt/a.pl", "/opt/F.framework")
        assert paths.command("send", "2") == [
            "/usr/bin/perl", "/opt/a.pl", "/opt/F.framework", "send", "2",
        ]
