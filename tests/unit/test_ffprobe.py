import pytest
import json
from pathlib import Path
from unittest.mock import patch
from vfit.domain.errors import ProbeError
from vfit.infrastructure.ffprobe import FFprobeAdapter

def test_ffprobe_duration():
    mock_output = {
        "format": {
            "filename": "test.mp4",
            "format_name": "mov,mp4,m4a,3gp,3g2,mj2",
            "duration": "14.320000"
        }
    }

    with patch("subprocess.run") as mock_run:
        mock_run.return_value.stdout = json.dumps(mock_output)
        mock_run.return_value.returncode = 0

        adapter = FFprobeAdapter()
        assert adapter.get_duration(Path("test.mp4")) == pytest.approx(14.32)

        cmd = mock_run.call_args[0][0]
        assert cmd[0] == "ffprobe"
        assert "-show_format" in cmd
        assert cmd[-1] == "test.mp4"

def test_ffprobe_error():
    with patch("subprocess.run") as mock_run:
        mock_run.return_value.returncode = 1
        mock_run.return_value.stderr = "test.mp4: Invalid data found when processing input"

        adapter = FFprobeAdapter()
        with pytest.raises(ProbeError, match="Invalid data"):
            adapter.get_duration(Path("test.mp4"))

@pytest.mark.parametrize("stdout", [
    "not json",
    json.dumps({}),
    json.dumps({"format": {}}),
    json.dumps({"format": {"duration": "N/A"}}),
    json.dumps({"format": {"duration": "0.000000"}}),
    json.dumps({"format": {"duration": "-3"}}),
])
def test_ffprobe_unusable_duration(stdout):
    with patch("subprocess.run") as mock_run:
        mock_run.return_value.stdout = stdout
        mock_run.return_value.returncode = 0

        with pytest.raises(ProbeError):
            FFprobeAdapter().get_duration(Path("test.mp4"))

def test_ffprobe_not_runnable():
    with patch("subprocess.run", side_effect=FileNotFoundError("ffprobe")):
        with pytest.raises(ProbeError):
            FFprobeAdapter().get_duration(Path("test.mp4"))

def test_ffprobe_output_decoded_leniently():
    with patch("subprocess.run") as mock_run:
        mock_run.return_value.stdout = json.dumps({"format": {"duration": "1.5"}})
        mock_run.return_value.returncode = 0

        FFprobeAdapter().get_duration(Path("test.mp4"))

        kwargs = mock_run.call_args[1]
        assert kwargs["encoding"] == "utf-8"
        assert kwargs["errors"] == "replace"
