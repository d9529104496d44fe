from __future__ import annotations

from pathlib import Path

from devnexus.container.bindings import BindingStore, is_within
from devnexus.session.router import SessionRouter, SessionTarget


def _router(store: BindingStore) -> SessionRouter:
    return SessionRouter(store, workspace_mount="/workspace", home_directory=lambda: Path("/home/dev"))


def test_project_and_nested_paths_route_to_same_container() -> None:
    store = BindingStore()
    store.record("/proj", "abc123", remote_user="vscode")
    router = _router(store)

    root = router.route("/proj")
    nested = router.route("/proj/sub/dir")

    assert root.target == SessionTarget.CONTAINER
    assert nested.is_container
    assert root.container_id == nested.container_id == "abc123"
    assert nested.working_directory == "/workspace"
    assert nested.remote_user == "vscode"


def test_unrelated_and_sibling_prefix_paths_route_to_host() -> None:
    store = BindingStore()
    store.record("/proj", "abc123")
    router = _router(store)

    other = router.route("/other/place")
    sibling = router.route("/project-two")

    assert other.target == SessionTarget.HOST
    assert other.working_directory == "/other/place"
    assert sibling.target == SessionTarget.HOST


def test_missing_working_directory_defaults_to_home_on_host() -> None:
    router = _router(BindingStore())

    for value in (None, "", "   "):
        decision = router.route(value)
        assert decision.target == SessionTarget.HOST
        assert decision.working_directory == "/home/dev"


def test_newest_binding_wins_after_replacement() -> None:
    store = BindingStore()
    store.record("/proj", "old")
    store.record("/proj", "new")

    assert _router(store).route("/proj/src").container_id == "new"


def test_first_matching_binding_wins_for_overlapping_roots() -> None:
    store = BindingStore()
    store.record("/mono", "outer")
    store.record("/mono/service", "inner")

    assert _router(store).route("/mono/service/app").container_id == "outer"


def test_relative_segments_are_normalized_before_matching() -> None:
    store = BindingStore()
    store.record("/proj", "abc123")

    assert _router(store).route("/proj/sub/../other").container_id == "abc123"
    assert _router(store).route("/proj/../elsewhere").target == SessionTarget.HOST


def test_is_within_prefix_rules() -> None:
    assert is_within("/proj", "/proj")
    assert is_within("/proj/a", "/proj")
    assert not is_within("/projects", "/proj")
    assert is_within("/anything", "/")
