"""Tests for input expansion and external DNG conversion."""

import subprocess
from pathlib import Path

import pytest

from burstfuse.contracts import ExternalConversionFailure
from burstfuse.raw import inputs
from burstfuse.raw.inputs import convert_to_dng, expand_inputs, resolve_converter_executable

pytestmark = pytest.mark.unit


@pytest.fixture
def burst_dir(tmp_path):
    for name in ("c.dng", "a.dng", "b.CR2", ".hidden.dng"):
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "d.dng").write_bytes(b"")
    return tmp_path


class TestExpandInputs:

    def test_directory_expanded_sorted(self, burst_dir):
        files = expand_inputs([burst_dir])
        assert [p.name for p in files] == ["a.dng", "b.CR2", "c.dng"]

    def test_hidden_files_optional(self, burst_dir):
        files = expand_inputs([burst_dir], skip_hidden=False)
        assert ".hidden.dng" in [p.name for p in files]

    def test_extension_filter(self, burst_dir):
        files = expand_inputs([burst_dir], extensions=[".cr2"])
        assert [p.name for p in files] == ["b.CR2"]

    def test_file_list_passed_through(self, burst_dir):
        given = [burst_dir / "c.dng", burst_dir / "a.dng"]
        assert expand_inputs(given) == given

    def test_several_directories_not_expanded(self, burst_dir):
        given = [burst_dir, burst_dir / "sub"]
        assert expand_inputs(given) == given


class TestConverterExecutable:

    def test_plain_executable(self, tmp_path):
        exe = tmp_path / "dngconverter"
        assert resolve_converter_executable(exe) == exe

    def test_macos_bundle(self, tmp_path):
        bundle = tmp_path / "Adobe DNG Converter.app"
        assert resolve_converter_executable(bundle) == (
            bundle / "Contents" / "MacOS" / "Adobe DNG Converter"
        )


class TestConvertToDng:

    def _fake_run(self, calls, create=True, returncode=0):
        def run(cmd, **kwargs):
            calls.append(cmd)
            out_dir = Path(cmd[cmd.index("-d") + 1])
            if create:
                for arg in cmd[cmd.index("-d") + 2:]:
                    (out_dir / f"{Path(arg).stem}.dng").write_bytes(b"")
            return subprocess.CompletedProcess(cmd, returncode, stdout="", stderr="warning")
        return run

    def test_outputs_in_input_order(self, tmp_path, monkeypatch):
        calls = []
        monkeypatch.setattr(inputs.subprocess, "run", self._fake_run(calls))
        out = convert_to_dng([tmp_path / "b.CR3", tmp_path / "a.CR3"], "/opt/dng", tmp_path / "tmp")
        assert [p.name for p in out] == ["b.dng", "a.dng"]
        assert calls[0][:5] == ["/opt/dng", "-c", "-p0", "-d", str(tmp_path / "tmp")]

    def test_non_zero_exit_tolerated_when_outputs_exist(self, tmp_path, monkeypatch):
        monkeypatch.setattr(inputs.subprocess, "run", self._fake_run([], returncode=3))
        out = convert_to_dng([tmp_path / "a.CR3"], "/opt/dng", tmp_path / "tmp")
        assert out[0].exists()

    def test_missing_output_raises(self, tmp_path, monkeypatch):
        monkeypatch.setattr(inputs.subprocess, "run", self._fake_run([], create=False))
        with pytest.raises(ExternalConversionFailure, match="a.dng"):
            convert_to_dng([tmp_path / "a.CR3"], "/opt/dng", tmp_path / "tmp")

    def test_converter_not_runnable(self, tmp_path, monkeypatch):
        def run(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])
        monkeypatch.setattr(inputs.subprocess, "run", run)
        with pytest.raises(ExternalConversionFailure, match="could not run"):
            convert_to_dng([tmp_path / "a.CR3"], tmp_path / "missing", tmp_path / "tmp")

    def test_no_inputs(self, tmp_path, monkeypatch):
        calls = []
        monkeypatch.setattr(inputs.subprocess, "run", self._fake_run(calls))
        assert convert_to_dng([], "/opt/dng", tmp_path / "tmp") == []
        assert calls == []
