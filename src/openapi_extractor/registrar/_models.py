"""Registration data model."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True, order=True)
class GroupVersion:
    """An API group and version pair, e.g. ``wardle.example.com/v1alpha1``."""

    group: str
    version: str

    def __str__(self) -> str:
        return f"{self.group}/{self.version}"


@dataclass(frozen=True, slots=True)
class APIServiceDescriptor:
    """One declared APIService.

    Attributes:
        name: APIService object name (``<version>.<group>``).
        group: API group served.
        version: API version served.
        source_path: Manifest file the declaration came from.
        manifest: The decoded manifest, unmodified.
    """

    name: str
    group: str
    version: str
    source_path: Path
    manifest: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)  # pyright: ignore[reportExplicitAny]

    @property
    def group_version(self) -> GroupVersion:
        return GroupVersion(self.group, self.version)


@dataclass(frozen=True, slots=True)
class ServingParameters:
    """Where the aggregated server must bind and find its certificates."""

    host: str
    port: int
    cert_dir: Path


@dataclass(frozen=True, slots=True)
class Registration:
    """Result of installing the declared APIServices."""

    descriptors: tuple[APIServiceDescriptor, ...]
    serving: ServingParameters

    @property
    def group_versions(self) -> list[GroupVersion]:
        """Group-versions in registration order."""
        return [d.group_version for d in self.descriptors]

    def descriptor_for(self, group_version: GroupVersion) -> APIServiceDescriptor:
        """Return the descriptor registered for ``group_version``.

        Raises:
            KeyError: If the group-version was not registered.
        """
        for descriptor in self.descriptors:
            if descriptor.group_version == group_version:
                return descriptor
        raise KeyError(str(group_version))
