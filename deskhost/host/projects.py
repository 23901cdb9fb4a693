"""In-memory project registry."""

from __future__ import annotations

import os

from loguru import logger

from deskhost.plugins.core.types import Project


def _norm(path: str) -> str:
    return os.path.normcase(os.path.abspath(os.path.expanduser(path)))


class ProjectRegistry:
    """Known projects plus the currently open one and the one open before it."""

    def __init__(self):
        self._projects: dict[str, Project] = {}
        self._current_id: str | None = None
        self._last_id: str | None = None

    def add(self, project: Project) -> Project:
        self._projects[project.id] = project
        return project

    def remove(self, project_id: str) -> None:
        self._projects.pop(project_id, None)
        if self._current_id == project_id:
            self._current_id = None
        if self._last_id == project_id:
            self._last_id = None

    def list(self) -> list[Project]:
        return list(self._projects.values())

    def find_by_path(self, path: str) -> Project | None:
        target = _norm(path)
        for project in self._projects.values():
            if _norm(project.path) == target:
                return project
        return None

    def get_type(self, project: Project) -> str:
        return project.type

    def open(self, project_id: str) -> Project | None:
        project = self._projects.get(project_id)
        if project is None:
            logger.info("Project not found: {}", project_id)
            return None
        if self._current_id != project_id:
            self._last_id = self._current_id
            self._current_id = project_id
        return project

    def get_current(self) -> Project | None:
        return self._projects.get(self._current_id) if self._current_id else None

    def get_last(self) -> Project | None:
        return self._projects.get(self._last_id) if self._last_id else None
