"""Core resolution and document assembly for Go module SBOMs."""

__all__ = [
    "buildinfo",
    "config",
    "cyclonedx",
    "download",
    "filter",
    "generator",
    "graph",
    "hashes",
    "license",
    "module",
    "modules",
    "packages",
    "reporter",
    "s3util",
    "semver",
    "spdx",
    "vendor",
    "version",
]
