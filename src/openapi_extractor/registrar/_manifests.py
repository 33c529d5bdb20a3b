"""APIService manifest discovery.

Manifests are read from the configured paths. A path may be a single file
or a directory; directories are scanned non-recursively for ``.yaml``,
``.yml`` and ``.json`` files sorted by name. Every document whose kind is
``APIService`` becomes one descriptor; other documents are ignored.
"""

from pathlib import Path
from typing import Any, cast

import yaml

from openapi_extractor.exceptions import ConfigurationError, Phase

from ._models import APIServiceDescriptor, GroupVersion

MANIFEST_SUFFIXES = frozenset({".yaml", ".yml", ".json"})
APISERVICE_KIND = "APIService"


def _manifest_files(path: Path) -> list[Path]:
    if path.is_file():
        return [path]
    return sorted(
        (p for p in path.iterdir() if p.is_file() and p.suffix in MANIFEST_SUFFIXES),
        key=lambda p: p.name,
    )


def _descriptor(document: dict[str, Any], source: Path) -> APIServiceDescriptor:  # pyright: ignore[reportExplicitAny]
    spec = cast("dict[str, Any]", document.get("spec") or {})  # pyright: ignore[reportExplicitAny]
    group = spec.get("group")
    version = spec.get("version")
    if not isinstance(group, str) or not group or not isinstance(version, str) or not version:
        msg = f"APIService in {source} must set spec.group and spec.version"
        raise ConfigurationError(msg, key="apiservices", phase=Phase.REGISTRATION)

    metadata = cast("dict[str, Any]", document.get("metadata") or {})  # pyright: ignore[reportExplicitAny]
    name = metadata.get("name") or f"{version}.{group}"
    return APIServiceDescriptor(
        name=str(name),
        group=group,
        version=version,
        source_path=source,
        manifest=document,
    )


def read_manifest_file(path: Path) -> list[APIServiceDescriptor]:
    """Read every APIService document in ``path``, in file order.

    Raises:
        ConfigurationError: If the file cannot be parsed or an APIService
            document lacks its group or version.
    """
    try:
        documents = list(yaml.safe_load_all(path.read_text(encoding="utf-8")))
    except (OSError, yaml.YAMLError) as e:
        msg = f"Failed to read APIService manifest {path}: {e}"
        raise ConfigurationError(
            msg, key="apiservices", phase=Phase.REGISTRATION, cause=e
        ) from e

    descriptors: list[APIServiceDescriptor] = []
    for document in documents:
        if not isinstance(document, dict):
            continue
        if document.get("kind") != APISERVICE_KIND:
            continue
        descriptors.append(_descriptor(cast("dict[str, Any]", document), path))  # pyright: ignore[reportExplicitAny]
    return descriptors


def read_apiservices(
    paths: list[Path] | tuple[Path, ...],
    *,
    error_if_path_missing: bool = True,
) -> list[APIServiceDescriptor]:
    """Collect APIService descriptors from ``paths`` in registration order.

    Args:
        paths: Files or directories, in the order given on the command line.
        error_if_path_missing: Fail on paths that do not exist instead of
            skipping them.

    Returns:
        Descriptors ordered by path, then file name, then document.

    Raises:
        ConfigurationError: If a path is missing, nothing was declared, or
            two declarations share a group-version.
    """
    descriptors: list[APIServiceDescriptor] = []
    seen: dict[GroupVersion, Path] = {}

    for path in paths:
        if not path.exists():
            if error_if_path_missing:
                msg = f"APIService path does not exist: {path}"
                raise ConfigurationError(msg, key="apiservices", phase=Phase.REGISTRATION)
            continue

        for manifest in _manifest_files(path):
            for descriptor in read_manifest_file(manifest):
                gv = descriptor.group_version
                if gv in seen:
                    msg = (
                        f"Duplicate APIService for {gv} in {manifest} "
                        f"(already declared in {seen[gv]})"
                    )
                    raise ConfigurationError(
                        msg, key="apiservices", phase=Phase.REGISTRATION
                    )
                seen[gv] = manifest
                descriptors.append(descriptor)

    if not descriptors:
        joined = ", ".join(str(p) for p in paths)
        msg = f"No APIService declarations found in: {joined}"
        raise ConfigurationError(msg, key="apiservices", phase=Phase.REGISTRATION)

    return descriptors
