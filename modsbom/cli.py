"""Command-line interface for Go module SBOM generation."""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from typing import Any, Dict, List

import yaml

from modsbom.core import generator, reporter
from modsbom.core.config import DEFAULT_CONFIG_PATH, GeneratorConfig, load_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="modsbom", description="Generate SPDX and CycloneDX SBOMs for Go modules")
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=pathlib.Path, default=DEFAULT_CONFIG_PATH, help="YAML configuration file")
    common.add_argument("--out-dir", type=pathlib.Path, default=None, help="Directory the documents are written to")
    common.add_argument("--spdx", action=argparse.BooleanOptionalAction, default=None, help="Emit the SPDX document")
    common.add_argument("--cyclonedx", action=argparse.BooleanOptionalAction, default=None, help="Emit the CycloneDX document")
    common.add_argument("--licenses", dest="detect_licenses", action="store_true", default=None, help="Download modules and detect their licenses")
    common.add_argument("--std", dest="include_stdlib", action="store_true", default=None, help="Include the Go standard library as a dependency")
    common.add_argument("--version-override", default=None, help="Version to report for the main module")
    common.add_argument("--chunk-size", type=int, default=None, help="Modules per go invocation")
    common.add_argument("--go", dest="go_binary", default=None, help="Go executable to run")
    common.add_argument("--s3-bucket", default=None, help="Upload the documents to this S3 bucket")
    common.add_argument("--s3-prefix", default=None, help="Key prefix for uploaded documents")
    common.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    bin_parser = subparsers.add_parser("bin", parents=[common], help="Generate SBOMs for a compiled Go binary")
    bin_parser.add_argument("binary", type=pathlib.Path, help="Path to the Go binary")
    bin_parser.add_argument("--module-dir", type=pathlib.Path, default=None, help="Source tree used to resolve local replacements")
    bin_parser.add_argument("--image-digest", default=None, help="Digest of the image the binary ships in (sha256:...)")

    mod_parser = subparsers.add_parser("mod", parents=[common], help="Generate SBOMs for a Go module source tree")
    mod_parser.add_argument("module_dir", nargs="?", type=pathlib.Path, default=pathlib.Path("."), help="Module root directory")
    mod_parser.add_argument("--test", dest="include_test", action="store_true", default=None, help="Include test-only dependencies")
    mod_parser.add_argument("--packages", dest="include_packages", action="store_true", default=None, help="Include packages as nested components")
    return parser


def resolve_config(args: argparse.Namespace) -> GeneratorConfig:
    config = load_config(args.config)
    overrides: Dict[str, Any] = {
        "out_dir": args.out_dir,
        "spdx": args.spdx,
        "cyclonedx": args.cyclonedx,
        "detect_licenses": args.detect_licenses,
        "include_stdlib": args.include_stdlib,
        "version_override": args.version_override,
        "chunk_size": args.chunk_size,
        "go_binary": args.go_binary,
        "s3_bucket": args.s3_bucket,
        "s3_prefix": args.s3_prefix,
        "include_test": getattr(args, "include_test", None),
        "include_packages": getattr(args, "include_packages", None),
    }
    if args.chunk_size is not None and args.chunk_size < 1:
        raise ValueError(f"--chunk-size must be positive, got {args.chunk_size}")
    return config.with_overrides(**overrides)


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = resolve_config(args)
    except (ValueError, yaml.YAMLError) as exc:
        print(f"invalid configuration: {exc}", file=sys.stderr)
        return 1

    try:
        if args.command == "bin":
            result = generator.generate_from_binary(
                str(args.binary),
                config,
                module_dir=str(args.module_dir) if args.module_dir else None,
                image_digest=args.image_digest,
            )
        else:
            result = generator.generate_from_module(str(args.module_dir), config)
        paths = reporter.write_reports(result, config)
    except generator.GenerationError as exc:
        print(f"failed to generate SBOM: {exc}", file=sys.stderr)
        return 1

    print(
        "Generated SBOM for "
        f"{result.main.coordinates()} "
        f"SPDX={paths.spdx_path or 'skipped'} "
        f"CycloneDX={paths.cyclonedx_path or 'skipped'}"
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
