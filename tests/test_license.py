import json
from pathlib import Path

import pytest

from modsbom.core import download, license
from modsbom.core.config import GeneratorConfig
from modsbom.core.module import LocalReplacement, Module
from modsbom.runners import gocmd

MIT_TEXT = """MIT License

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction.
"""

APACHE_TEXT = """
                                 Apache License
                           Version 2.0, January 2004
                        http://www.apache.org/licenses/
"""

BSD3_TEXT = """Redistribution and use in source and binary forms, with or without
modification, are permitted provided that the following conditions are met:
3. Neither the name of the copyright holder nor the names of its contributors
may be used to endorse or promote products derived from this software.
"""


@pytest.mark.parametrize(
    "text, expected",
    [(MIT_TEXT, "MIT"), (APACHE_TEXT, "Apache-2.0"), (BSD3_TEXT, "BSD-3-Clause"), ("All rights reserved.", None)],
)
def test_identify_license(text, expected):
    assert license.identify_license(text) == expected


def test_detect_license_reads_license_files(tmp_path: Path):
    (tmp_path / "README.md").write_text(MIT_TEXT, encoding="utf-8")
    assert license.detect_license(tmp_path) is None
    (tmp_path / "LICENSE.txt").write_text(APACHE_TEXT, encoding="utf-8")
    assert license.detect_license(tmp_path) == "Apache-2.0"


def test_detect_license_missing_dir(tmp_path: Path):
    assert license.detect_license(tmp_path / "missing") is None


def _download_record(**fields) -> str:
    return json.dumps(fields)


def test_detect_licenses_downloads_and_checks_sums(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, caplog: pytest.LogCaptureFixture
):
    good_dir = tmp_path / "good"
    good_dir.mkdir()
    (good_dir / "LICENSE").write_text(MIT_TEXT, encoding="utf-8")
    bad_dir = tmp_path / "bad"
    bad_dir.mkdir()
    (bad_dir / "LICENSE").write_text(MIT_TEXT, encoding="utf-8")

    output = "\n".join(
        [
            _download_record(Path="example.com/good", Version="v1.0.0", Dir=str(good_dir), Sum="h1:good"),
            _download_record(Path="example.com/bad", Version="v1.0.0", Dir=str(bad_dir), Sum="h1:other"),
            _download_record(Path="example.com/missing", Version="v1.0.0", Error="not found"),
        ]
    )
    requested = []

    def fake_download(coordinates, go_binary="go"):
        requested.extend(coordinates)
        return gocmd.CommandOutput(1, output, "")

    monkeypatch.setattr(gocmd, "download_modules", fake_download)

    good = Module(path="example.com/good", version="v1.0.0", sum="h1:good")
    bad = Module(path="example.com/bad", version="v1.0.0", sum="h1:expected")
    missing = Module(path="example.com/missing", version="v1.0.0")
    stdlib = Module(path="std", version="go1.21.3")
    local = Module(path="example.com/local", replace=LocalReplacement(target="../local"))

    with caplog.at_level("WARNING"):
        download.detect_licenses([good, bad, missing, stdlib, local], GeneratorConfig())

    assert requested == ["example.com/good@v1.0.0", "example.com/bad@v1.0.0", "example.com/missing@v1.0.0"]
    assert good.license == "MIT"
    assert bad.license is None
    assert bad.dir == ""
    assert missing.license is None
    assert "module hash mismatch" in caplog.text
    assert "module download failed" in caplog.text


def test_fatal_download_error_raises(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(
        gocmd,
        "download_modules",
        lambda coordinates, go_binary="go": gocmd.CommandOutput(1, "", "go: no network"),
    )
    with pytest.raises(gocmd.GoCommandError, match="no network"):
        download.download_modules([Module(path="example.com/x", version="v1.0.0")], GeneratorConfig())
