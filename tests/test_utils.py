import json
from pathlib import Path

import pytest

from modsbom import __main__ as entrypoint
from modsbom import cli
from modsbom.core import generator, reporter, s3util
from modsbom.core.config import GeneratorConfig
from modsbom.core.module import Module
from modsbom.runners import gocmd


def test_entrypoint_delegates_to_cli(monkeypatch: pytest.MonkeyPatch):
    captured: dict[str, object] = {}

    def fake_main(argv):  # pragma: no cover - exercised in test
        captured["argv"] = argv
        return 42

    monkeypatch.setattr(entrypoint.cli, "main", fake_main)
    result = entrypoint.main(["mod", "."])
    assert result == 42
    assert captured["argv"] == ["mod", "."]


class DummyS3Client:
    def __init__(self) -> None:
        self.put_calls: list[tuple[str, str, bytes, str]] = []

    def put_object(self, Bucket: str, Key: str, Body: bytes, ContentType: str = "") -> None:  # noqa: N803 (boto style)
        self.put_calls.append((Bucket, Key, Body, ContentType))


def test_s3util_upload_json():
    client = DummyS3Client()
    payload = {"hello": "world"}
    s3util.upload_json("bucket", "key.json", payload, client=client)
    bucket, key, body, content_type = client.put_calls[0]
    assert bucket == "bucket"
    assert key == "key.json"
    assert content_type == "application/json"
    assert json.loads(body.decode("utf-8")) == payload


def test_s3util_without_boto3_skips_upload(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture):
    monkeypatch.setattr(s3util, "boto3", None)
    with caplog.at_level("WARNING"):
        s3util.upload_bytes("bucket", "key", b"data")
    assert "boto3 not available" in caplog.text


def _result() -> generator.Result:
    main = Module(path="example.com/app", version="v1.0.0", main=True)
    dep = Module(path="example.com/dep", version="v0.1.0")
    main.dependencies = [dep]
    return generator.Result(main=main, dependencies=[dep])


def test_write_reports_and_upload(tmp_path: Path):
    config = GeneratorConfig(out_dir=tmp_path / "out", s3_bucket="bucket", s3_prefix="sboms/")
    client = DummyS3Client()
    paths = reporter.write_reports(_result(), config, s3_client=client)

    assert paths.spdx_path == tmp_path / "out" / "app.spdx.json"
    assert paths.cyclonedx_path == tmp_path / "out" / "app.cdx.json"
    assert json.loads(paths.spdx_path.read_text())["spdxVersion"] == "SPDX-2.3"
    assert json.loads(paths.cyclonedx_path.read_text())["bomFormat"] == "CycloneDX"
    assert [call[1] for call in client.put_calls] == ["sboms/app.spdx.json", "sboms/app.cdx.json"]


def test_write_reports_respects_disabled_formats(tmp_path: Path):
    config = GeneratorConfig(out_dir=tmp_path, spdx=False)
    paths = reporter.write_reports(_result(), config)
    assert paths.spdx_path is None
    assert not (tmp_path / "app.spdx.json").exists()
    assert paths.cyclonedx_path.exists()


def test_document_basename_prefers_binary():
    result = _result()
    assert reporter.document_basename(result) == "app"
    result.binary_path = "/usr/local/bin/server"
    assert reporter.document_basename(result) == "server"


def test_cli_writes_documents(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture):
    calls = {}

    def fake_generate(module_dir, config):
        calls["module_dir"] = module_dir
        calls["config"] = config
        return _result()

    monkeypatch.setattr(generator, "generate_from_module", fake_generate)
    exit_code = cli.main(
        ["mod", str(tmp_path), "--config", str(tmp_path / "none.yml"), "--out-dir", str(tmp_path / "out"), "--test", "--no-spdx"]
    )
    assert exit_code == 0
    assert calls["module_dir"] == str(tmp_path)
    assert calls["config"].include_test is True
    assert (tmp_path / "out" / "app.cdx.json").exists()
    assert not (tmp_path / "out" / "app.spdx.json").exists()
    assert "Generated SBOM for example.com/app@v1.0.0" in capsys.readouterr().out


def test_cli_reports_generation_failure(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture):
    def failing(binary_path, config, module_dir=None, image_digest=None):
        raise generator.GenerationError("loading build info", "failed to parse any modules")

    monkeypatch.setattr(generator, "generate_from_binary", failing)
    exit_code = cli.main(["bin", str(tmp_path / "app"), "--config", str(tmp_path / "none.yml")])
    assert exit_code == 1
    assert "failed to generate SBOM: loading build info: failed to parse any modules" in capsys.readouterr().err


def test_cli_rejects_bad_chunk_size(tmp_path: Path, capsys: pytest.CaptureFixture):
    exit_code = cli.main(["mod", "--config", str(tmp_path / "none.yml"), "--chunk-size", "0"])
    assert exit_code == 1
    assert "invalid configuration" in capsys.readouterr().err


def test_resolve_config_prefers_flags(tmp_path: Path):
    config_path = tmp_path / ".modsbom.yml"
    config_path.write_text("chunk-size: 7\ngo-binary: go1.22\nversion-override: v0.0.1\n", encoding="utf-8")
    args = cli.build_parser().parse_args(["bin", "app", "--config", str(config_path), "--version-override", "v2.0.0"])
    config = cli.resolve_config(args)
    assert config.chunk_size == 7
    assert config.go_binary == "go1.22"
    assert config.version_override == "v2.0.0"
    assert config.include_test is False


@pytest.mark.parametrize(
    "text, expected",
    [("go version go1.21.3 linux/amd64\n", "go1.21.3"), ("app: go1.20\n", "go1.20")],
)
def test_parse_go_version(text, expected):
    assert gocmd.parse_version(text) == expected


def test_parse_go_version_rejects_garbage():
    with pytest.raises(ValueError):
        gocmd.parse_version("nothing here")


def test_missing_go_binary_raises(tmp_path: Path):
    with pytest.raises(gocmd.GoCommandError):
        gocmd.execute(["version"], go_binary=str(tmp_path / "no-such-go"))
