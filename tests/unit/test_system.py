import pytest
from unittest.mock import patch
from vfit.domain.errors import MissingDependencyError
from vfit.infrastructure.system import check_dependencies, list_ffmpeg_encoders

def test_all_dependencies_present():
    with patch("shutil.which", return_value="/usr/bin/tool"):
        check_dependencies()

def test_missing_dependency():
    with patch("shutil.which", side_effect=lambda tool: None if tool == "ffprobe" else "/usr/bin/ffmpeg"):
        with pytest.raises(MissingDependencyError, match="'ffprobe' is not available"):
            check_dependencies()

def test_list_ffmpeg_encoders():
    with patch("subprocess.run") as mock_run:
        mock_run.return_value.returncode = 0
        mock_run.return_value.stdout = " V....D hevc_nvenc  NVIDIA NVENC hevc encoder"
        assert "hevc_nvenc" in list_ffmpeg_encoders()
        assert mock_run.call_args[0][0] == ["ffmpeg", "-hide_banner", "-encoders"]

def test_list_ffmpeg_encoders_failure():
    with patch("subprocess.run", side_effect=FileNotFoundError("ffmpeg")):
        assert list_ffmpeg_encoders() == ""

def test_list_ffmpeg_encoders_decoded_leniently():
    with patch("subprocess.run") as mock_run:
        mock_run.return_value.returncode = 0
        mock_run.return_value.stdout = ""
        list_ffmpeg_encoders()
        assert mock_run.call_args[1]["errors"] == "replace"
