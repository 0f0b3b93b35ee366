"""Shared pytest fixtures for project_unifier tests."""

from __future__ import annotations

import io
import zipfile
from typing import Dict, List

import pytest

from project_unifier import (
    ClassifiedFile,
    ProfileName,
    ProfileRegistry,
    Project,
    ProjectProfile,
    UnifierConfig,
)

# ============================================================================
# Profile Fixtures
# ============================================================================


@pytest.fixture
def java_profile() -> ProjectProfile:
    return ProfileRegistry.get(ProfileName.JAVA)


@pytest.fixture
def web_profile() -> ProjectProfile:
    return ProfileRegistry.get(ProfileName.WEB)


@pytest.fixture
def total_profile() -> ProjectProfile:
    return ProfileRegistry.get(ProfileName.TOTAL)


# ============================================================================
# Listener & Builders
# ============================================================================


class RecordingWalkListener:
    """Walk listener that keeps every callback for assertions."""

    def __init__(self):
        self.started: List[int] = []
        self.roots: List[str] = []
        self.warnings: List[str] = []
        self.completed: List[int] = []

    def on_start(self, total: int) -> None:
        self.started.append(total)

    def on_root(self, name: str) -> None:
        self.roots.append(name)

    def on_warning(self, message: str) -> None:
        self.warnings.append(message)

    def on_complete(self, decoded: int, elapsed_time: float) -> None:
        self.completed.append(decoded)


@pytest.fixture
def listener() -> RecordingWalkListener:
    return RecordingWalkListener()


@pytest.fixture
def config(tmp_path) -> UnifierConfig:
    """Default config writing into a temporary output folder."""
    return UnifierConfig(output_folder=str(tmp_path / "output"), max_worker_threads=4)


def make_file(
    name: str,
    content: str = "",
    group_key: str = "(Default Package)",
    file_type: str = "java",
    relative_path: str = "",
    selected: bool = True,
) -> ClassifiedFile:
    return ClassifiedFile(
        relative_path=relative_path or name,
        name=name,
        content=content,
        file_type=file_type,
        group_key=group_key,
        selected=selected,
    )


def make_project(name: str, files: List[ClassifiedFile]) -> Project:
    project = Project.create(name)
    for f in files:
        f.owner_project_id = project.id
    project.files.extend(files)
    return project


def zip_bytes(files: Dict[str, bytes]) -> bytes:
    """Build an in-memory ZIP archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buffer.getvalue()
