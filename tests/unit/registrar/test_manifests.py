"""Unit tests for APIService manifest discovery."""

from collections.abc import Callable
from pathlib import Path

import pytest

from openapi_extractor.exceptions import ConfigurationError, Phase
from openapi_extractor.registrar import GroupVersion, read_apiservices, read_manifest_file

WriteAPIService = Callable[..., Path]


class TestGroupVersion:
    def test_renders_group_slash_version(self) -> None:
        assert str(GroupVersion("wardle.example.com", "v1alpha1")) == "wardle.example.com/v1alpha1"

    def test_orders_by_group_then_version(self) -> None:
        gvs = [
            GroupVersion("b.example.com", "v1"),
            GroupVersion("a.example.com", "v2"),
            GroupVersion("a.example.com", "v1"),
        ]

        assert sorted(gvs) == [
            GroupVersion("a.example.com", "v1"),
            GroupVersion("a.example.com", "v2"),
            GroupVersion("b.example.com", "v1"),
        ]

    def test_is_hashable(self) -> None:
        assert len({GroupVersion("g", "v1"), GroupVersion("g", "v1")}) == 1


class TestReadManifestFile:
    def test_reads_documents_in_file_order(
        self, tmp_path: Path, write_apiservice: WriteAPIService
    ) -> None:
        path = write_apiservice(
            tmp_path / "apiservices.yaml",
            ("wardle.example.com", "v1beta1"),
            ("wardle.example.com", "v1alpha1"),
        )

        descriptors = read_manifest_file(path)

        assert [d.name for d in descriptors] == [
            "v1beta1.wardle.example.com",
            "v1alpha1.wardle.example.com",
        ]
        assert descriptors[0].source_path == path
        assert descriptors[0].manifest["spec"]["groupPriorityMinimum"] == 2000

    def test_ignores_other_kinds_and_empty_documents(self, tmp_path: Path) -> None:
        path = tmp_path / "mixed.yaml"
        _ = path.write_text(
            "---\n"
            "apiVersion: v1\nkind: Namespace\nmetadata:\n  name: wardle\n"
            "---\n"
            "apiVersion: apiregistration.k8s.io/v1\nkind: APIService\n"
            "spec:\n  group: wardle.example.com\n  version: v1\n"
        )

        descriptors = read_manifest_file(path)

        assert len(descriptors) == 1
        assert descriptors[0].name == "v1.wardle.example.com"

    def test_rejects_apiservice_without_version(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        _ = path.write_text("kind: APIService\nspec:\n  group: wardle.example.com\n")

        with pytest.raises(ConfigurationError, match="spec.group and spec.version"):
            _ = read_manifest_file(path)

    def test_rejects_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        _ = path.write_text("kind: [APIService\n")

        with pytest.raises(ConfigurationError) as exc_info:
            _ = read_manifest_file(path)

        assert exc_info.value.phase is Phase.REGISTRATION
        assert exc_info.value.cause is not None


class TestReadAPIServices:
    def test_orders_by_path_then_filename(
        self, tmp_path: Path, write_apiservice: WriteAPIService
    ) -> None:
        first = tmp_path / "first"
        second = tmp_path / "second"
        _ = write_apiservice(second / "a.yaml", ("a.example.com", "v1"))
        _ = write_apiservice(first / "b.yaml", ("b.example.com", "v1"))
        _ = write_apiservice(first / "a.yml", ("c.example.com", "v1"))
        _ = (first / "notes.txt").write_text("kind: APIService")

        descriptors = read_apiservices([first, second])

        assert [str(d.group_version) for d in descriptors] == [
            "c.example.com/v1",
            "b.example.com/v1",
            "a.example.com/v1",
        ]

    def test_accepts_single_file(
        self, tmp_path: Path, write_apiservice: WriteAPIService
    ) -> None:
        path = write_apiservice(tmp_path / "one.yaml", ("wardle.example.com", "v1"))

        assert len(read_apiservices([path])) == 1

    def test_missing_path_is_an_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="does not exist") as exc_info:
            _ = read_apiservices([tmp_path / "missing"])

        assert exc_info.value.key == "apiservices"

    def test_missing_path_can_be_skipped(
        self, tmp_path: Path, write_apiservice: WriteAPIService
    ) -> None:
        path = write_apiservice(tmp_path / "dir" / "one.yaml", ("wardle.example.com", "v1"))

        descriptors = read_apiservices(
            [tmp_path / "missing", path.parent], error_if_path_missing=False
        )

        assert len(descriptors) == 1

    def test_empty_directory_is_an_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="No APIService declarations"):
            _ = read_apiservices([tmp_path])

    def test_duplicate_group_version_is_an_error(
        self, tmp_path: Path, write_apiservice: WriteAPIService
    ) -> None:
        _ = write_apiservice(tmp_path / "a.yaml", ("wardle.example.com", "v1"))
        _ = write_apiservice(tmp_path / "b.yaml", ("wardle.example.com", "v1"))

        with pytest.raises(ConfigurationError, match="Duplicate APIService"):
            _ = read_apiservices([tmp_path])
