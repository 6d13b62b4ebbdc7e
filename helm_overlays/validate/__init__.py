"""Checks on rendered values files and manifests."""

from helm_overlays.validate.checks import (
    KIND_CHECKS,
    Document,
    check_default_storage_classes,
    check_documents,
    collect_yaml_files,
    parse_documents,
    validate_files,
)

__all__ = [
    "KIND_CHECKS",
    "Document",
    "check_default_storage_classes",
    "check_documents",
    "collect_yaml_files",
    "parse_documents",
    "validate_files",
]
