from __future__ import annotations

import json
from pathlib import Path

import pytest

from devnexus.devcontainer import (
    ContainerSpec,
    ResolutionStatus,
    find_config_path,
    parse_config_text,
    resolve_config,
    strip_jsonc_comments,
)
from devnexus.errors import ConfigParseError


def _write(path: Path, payload: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")
    return path


def test_folder_config_wins_over_root_file(tmp_path: Path) -> None:
    folder = _write(tmp_path / ".devcontainer" / "devcontainer.json", '{"image": "node:18"}')
    _write(tmp_path / ".devcontainer.json", '{"image": "python:3.12"}')

    assert find_config_path(tmp_path) == folder
    resolution = resolve_config(tmp_path)
    assert resolution.status == ResolutionStatus.FOUND
    assert resolution.path == str(folder)
    assert resolution.spec is not None
    assert resolution.spec.image == "node:18"


def test_root_file_used_when_folder_missing(tmp_path: Path) -> None:
    root_file = _write(tmp_path / ".devcontainer.json", '{"image": "node:18"}')

    resolution = resolve_config(tmp_path)

    assert resolution.found
    assert resolution.path == str(root_file)


def test_missing_config_is_not_found_not_an_error(tmp_path: Path) -> None:
    resolution = resolve_config(tmp_path)

    assert resolution.status == ResolutionStatus.NOT_FOUND
    assert resolution.spec is None
    assert resolution.error is None


def test_comments_are_stripped(tmp_path: Path) -> None:
    _write(
        tmp_path / ".devcontainer.json",
        """{
            // This is a comment
            "image": "node:18" /* block comment */
        }""",
    )

    resolution = resolve_config(tmp_path)

    assert resolution.spec == ContainerSpec(image="node:18")


def test_comment_markers_inside_strings_are_preserved() -> None:
    text = '{"image": "registry.example.com//node:18", "postCreateCommand": "echo \\"/* x */\\" // tail"}'

    spec = parse_config_text(text)

    assert spec.image == "registry.example.com//node:18"
    assert spec.post_create_command == 'echo "/* x */" // tail'


def test_strip_handles_unterminated_block_comment() -> None:
    assert strip_jsonc_comments('{"a": 1} /* open') == '{"a": 1}  '


def test_malformed_config_reports_parse_error(tmp_path: Path) -> None:
    config = _write(tmp_path / ".devcontainer.json", '{"image": "node:18",, }')

    resolution = resolve_config(tmp_path)

    assert resolution.status == ResolutionStatus.PARSE_ERROR
    assert resolution.spec is None
    assert isinstance(resolution.error, ConfigParseError)
    assert resolution.error.path == str(config)


@pytest.mark.parametrize(
    "payload",
    [
        '["node:18"]',
        '{"runArgs": "--privileged"}',
        '{"forwardPorts": ["not-a-port"]}',
        '{"build": {"args": {"A": ["x"]}}}',
    ],
)
def test_shape_errors_are_parse_errors(payload: str) -> None:
    with pytest.raises(ConfigParseError):
        parse_config_text(payload, path="/proj/.devcontainer.json")


def test_full_schema_is_parsed_and_unknown_keys_ignored() -> None:
    payload = {
        "name": "api",
        "build": {"dockerfile": "Dockerfile", "context": "..", "args": {"VARIANT": "3.12"}},
        "runArgs": ["--cap-add=SYS_PTRACE", "--env", "A=1"],
        "postCreateCommand": "pip install -e .",
        "forwardPorts": [8000, 5432],
        "remoteUser": "vscode",
        "features": {"ghcr.io/devcontainers/features/node:1": {}},
    }

    spec = parse_config_text(json.dumps(payload))

    assert spec.name == "api"
    assert spec.build is not None
    assert spec.build.dockerfile == "Dockerfile"
    assert spec.build.context == ".."
    assert spec.build.args == {"VARIANT": "3.12"}
    assert spec.run_args == ("--cap-add=SYS_PTRACE", "--env", "A=1")
    assert spec.forward_ports == (8000, 5432)
    assert spec.remote_user == "vscode"
    assert spec.is_launchable


def test_post_create_argv_form_is_shell_joined() -> None:
    spec = parse_config_text('{"image": "node:18", "postCreateCommand": ["npm", "run", "my task"]}')

    assert spec.post_create_command == "npm run 'my task'"


@pytest.mark.parametrize(
    ("spec", "expected"),
    [
        (ContainerSpec(image="node:18"), True),
        (ContainerSpec.model_validate({"build": {"dockerfile": "Dockerfile"}}), True),
        (ContainerSpec.model_validate({"build": {"context": "."}}), False),
        (ContainerSpec(name="inspect-only"), False),
        (ContainerSpec(image="   "), False),
    ],
)
def test_is_launchable(spec: ContainerSpec, expected: bool) -> None:
    assert spec.is_launchable is expected


def test_spec_is_immutable() -> None:
    spec = ContainerSpec(image="node:18")
    with pytest.raises(Exception):
        spec.image = "python:3.12"  # type: ignore[misc]
