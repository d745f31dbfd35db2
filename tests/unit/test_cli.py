"""
Tests for the command line entry point.
"""
import base64

import pytest

from vlogstudio.__main__ import build_parser, write_artifact


def test_parser_defaults():
    args = build_parser().parse_args(["images", "sunrise over paddy fields", "--count", "4"])
    assert args.command == "images"
    assert args.count == 4
    assert args.style == "vibrant"
    assert args.aspect_ratio == "9:16"
    assert args.model == "balanced"


def test_parser_rejects_unknown_choices():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["video", "temple", "--model", "ultra"])


def test_write_artifact(tmp_path):
    data = "data:image/png;base64," + base64.b64encode(b"png-bytes").decode()
    path = write_artifact({"data": data}, tmp_path, "scene_01_gemini")

    assert path == tmp_path / "scene_01_gemini.png"
    assert path.read_bytes() == b"png-bytes"
    assert write_artifact({"data": "https://cdn.test/a.mp4"}, tmp_path, "video") is None
