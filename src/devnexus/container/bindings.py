"""Authoritative project -> container binding store."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path


def canonical_path(path: str | os.PathLike[str]) -> str:
    return str(Path(path).expanduser().resolve(strict=False))


def is_within(path: str, root: str) -> bool:
    if path == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return path.startswith(prefix)


@dataclass(frozen=True)
class ContainerBinding:
    project_path: str
    container_id: str
    started_at: datetime
    image: str = ""
    remote_user: str = ""


class BindingStore:
    """Insertion-ordered map guarded by a lock; last writer wins per path."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._bindings: dict[str, ContainerBinding] = {}

    def record(
        self,
        project_path: str,
        container_id: str,
        *,
        image: str = "",
        remote_user: str = "",
        started_at: datetime | None = None,
    ) -> tuple[ContainerBinding, ContainerBinding | None]:
        """Store a binding and return it with the one it replaced, if any."""
        key = canonical_path(project_path)
        binding = ContainerBinding(
            project_path=key,
            container_id=container_id,
            started_at=started_at or datetime.now(timezone.utc),
            image=image,
            remote_user=remote_user,
        )
        with self._lock:
            previous = self._bindings.get(key)
            self._bindings[key] = binding
        return binding, previous

    def get(self, project_path: str) -> ContainerBinding | None:
        with self._lock:
            return self._bindings.get(canonical_path(project_path))

    def list(self) -> list[ContainerBinding]:
        with self._lock:
            return list(self._bindings.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._bindings)
