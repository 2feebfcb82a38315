"""Tests for manifest fetching, parsing and classification."""

from __future__ import annotations

import json

from pkgmirror.artifacts import ArtifactKind, RegistryArtifact
from pkgmirror.core.config import RepoRef
from pkgmirror.core.result import Err, Ok
from pkgmirror.github import GitHubError, MockGitHub, RepoContent
from pkgmirror.services.errors import ManifestParseError, ManifestUnavailable
from pkgmirror.services.manifest import (
    DependencyEntry,
    VersionConflict,
    fetch_manifest,
    normalize_version,
    parse_manifest,
    resolve,
    resolve_work_items,
)

SOURCE = RepoRef("Opentrons", "opentrons", "edge")
REGISTRY = "https://registry-host"


def _github_with(manifest: dict[str, object] | str) -> MockGitHub:
    gh = MockGitHub()
    text = manifest if isinstance(manifest, str) else json.dumps(manifest)
    gh.add_file("Opentrons", "opentrons", "package.json", "edge", text)
    return gh


class TestNormalizeVersion:
    def test_caret(self) -> None:
        assert normalize_version("^13.6.0") == "13.6.0"

    def test_tilde(self) -> None:
        assert normalize_version("~1.3.0") == "1.3.0"

    def test_only_one_operator_stripped(self) -> None:
        assert normalize_version("^^1.0.0") == "^1.0.0"

    def test_exact_and_other_ranges_kept(self) -> None:
        assert normalize_version("1.2.3") == "1.2.3"
        assert normalize_version(">=1.2.3") == ">=1.2.3"

    def test_entry_version(self) -> None:
        assert DependencyEntry("cypress", "^13.6.0").version == "13.6.0"


class TestParseManifest:
    def test_merges_groups_in_order(self) -> None:
        text = json.dumps(
            {
                "dependencies": {"react": "^18.2.0", "electron": "28.1.0"},
                "devDependencies": {"cypress": "^13.6.0", "left-pad": "~1.3.0"},
            }
        )

        result = parse_manifest(text)

        assert isinstance(result, Ok)
        assert result.value.names() == ["react", "electron", "cypress", "left-pad"]
        assert result.value.conflicts == ()

    def test_development_spec_wins_and_conflict_reported(self) -> None:
        text = json.dumps(
            {
                "dependencies": {"electron": "27.0.0", "react": "18.2.0"},
                "devDependencies": {"electron": "28.1.0"},
            }
        )

        result = parse_manifest(text)

        assert isinstance(result, Ok)
        assert result.value.names() == ["electron", "react"]
        assert result.value.entries[0] == DependencyEntry("electron", "28.1.0")
        assert result.value.conflicts == (VersionConflict("electron", "27.0.0", "28.1.0"),)

    def test_same_spec_in_both_groups_is_not_a_conflict(self) -> None:
        text = json.dumps({"dependencies": {"a": "1.0.0"}, "devDependencies": {"a": "1.0.0"}})
        result = parse_manifest(text)
        assert isinstance(result, Ok)
        assert result.value.conflicts == ()

    def test_missing_groups(self) -> None:
        result = parse_manifest('{"name": "app"}')
        assert isinstance(result, Ok)
        assert result.value.entries == ()

    def test_non_string_specs_skipped(self) -> None:
        result = parse_manifest('{"dependencies": {"a": "1.0.0", "b": {"version": "2"}}}')
        assert isinstance(result, Ok)
        assert result.value.names() == ["a"]

    def test_invalid_json(self) -> None:
        result = parse_manifest("{not json")
        assert isinstance(result, Err)
        assert isinstance(result.error, ManifestParseError)

    def test_root_not_object(self) -> None:
        result = parse_manifest("[]")
        assert isinstance(result, Err)
        assert isinstance(result.error, ManifestParseError)

    def test_group_not_object(self) -> None:
        result = parse_manifest('{"devDependencies": ["cypress"]}')
        assert isinstance(result, Err)
        assert "devDependencies" in result.error.message


class TestFetchManifest:
    def test_decodes_base64(self) -> None:
        gh = _github_with('{"dependencies": {}}')
        assert fetch_manifest(gh, SOURCE, "package.json") == Ok('{"dependencies": {}}')

    def test_not_found(self) -> None:
        result = fetch_manifest(MockGitHub(), SOURCE, "package.json")
        assert isinstance(result, Err)
        assert isinstance(result.error, ManifestUnavailable)
        assert result.error.source == "Opentrons/opentrons@edge:package.json"

    def test_auth_failure(self) -> None:
        gh = MockGitHub(fail_content=GitHubError("get package.json", 401, "Bad credentials"))
        result = fetch_manifest(gh, SOURCE, "package.json")
        assert isinstance(result, Err)
        assert "401" in result.error.message

    def test_directory(self) -> None:
        gh = MockGitHub()
        gh.files[("Opentrons", "opentrons", "package.json", "edge")] = RepoContent("dir", "")
        result = fetch_manifest(gh, SOURCE, "package.json")
        assert isinstance(result, Err)
        assert isinstance(result.error, ManifestUnavailable)

    def test_invalid_utf8(self) -> None:
        gh = MockGitHub()
        gh.files[("Opentrons", "opentrons", "package.json", "edge")] = RepoContent(
            "file", "//79", "base64"
        )
        result = fetch_manifest(gh, SOURCE, "package.json")
        assert isinstance(result, Err)
        assert isinstance(result.error, ManifestParseError)


class TestResolve:
    def test_scenario_binary(self) -> None:
        gh = _github_with({"devDependencies": {"cypress": "^13.6.0"}})

        result = resolve(gh, SOURCE, "package.json", REGISTRY)

        assert isinstance(result, Ok)
        [item] = result.value.items
        assert item.name == "cypress"
        assert item.version == "13.6.0"
        assert item.kind == ArtifactKind.BINARY
        assert len(item.artifact.platforms) == 3
        assert item.display_name == "Cypress"

    def test_scenario_registry(self) -> None:
        gh = _github_with({"dependencies": {"left-pad": "~1.3.0"}})

        result = resolve(gh, SOURCE, "package.json", REGISTRY)

        assert isinstance(result, Ok)
        [item] = result.value.items
        assert item.kind == ArtifactKind.REGISTRY
        assert item.artifact == RegistryArtifact("left-pad", REGISTRY)
        [target] = item.artifact.platforms
        assert item.artifact.download_url(item.version, target) == (
            "https://registry-host/left-pad/-/left-pad-1.3.0.tgz"
        )
        assert item.artifact.filename(item.version, target) == "left-pad-1.3.0.tgz"

    def test_parse_error_propagates(self) -> None:
        gh = _github_with("not json")
        result = resolve(gh, SOURCE, "package.json", REGISTRY)
        assert isinstance(result, Err)
        assert isinstance(result.error, ManifestParseError)

    def test_conflicts_carried(self) -> None:
        gh = _github_with({"dependencies": {"a": "1"}, "devDependencies": {"a": "2"}})
        result = resolve(gh, SOURCE, "package.json", REGISTRY)
        assert isinstance(result, Ok)
        assert result.value.conflicts == (VersionConflict("a", "1", "2"),)

    def test_resolve_work_items_keeps_order(self) -> None:
        parsed = parse_manifest('{"dependencies": {"puppeteer": "21.5.0", "lodash": "^4.17.21"}}')
        assert isinstance(parsed, Ok)
        items = resolve_work_items(parsed.value, REGISTRY)
        assert [(i.name, i.version, i.kind) for i in items] == [
            ("puppeteer", "21.5.0", ArtifactKind.BINARY),
            ("lodash", "4.17.21", ArtifactKind.REGISTRY),
        ]
