"""Filesystem layout of the abq-media workspace.

```
<home>/
  credentials.json
  projects/<name>/
    config.json
    registry.json
    runs/<run_id>/
    exports/
```
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path


def make_run_id(now: datetime | None = None) -> str:
    """ISO timestamp made safe for directory names."""

    moment = now or datetime.now(UTC)
    return moment.isoformat().replace(":", "-").replace(".", "-")


def make_stamp(now: datetime | None = None) -> str:
    moment = now or datetime.now(UTC)
    return moment.strftime("%Y%m%d-%H%M%S")


class WorkspacePaths:
    def __init__(self, home: Path) -> None:
        self._home = home

    @property
    def home(self) -> Path:
        return self._home

    @property
    def credentials_path(self) -> Path:
        return self._home / "credentials.json"

    @property
    def projects_dir(self) -> Path:
        return self._home / "projects"

    def project_dir(self, name: str) -> Path:
        return self.projects_dir / name

    def project_config_path(self, name: str) -> Path:
        return self.project_dir(name) / "config.json"

    def registry_path(self, name: str) -> Path:
        return self.project_dir(name) / "registry.json"

    def runs_dir(self, name: str) -> Path:
        return self.project_dir(name) / "runs"

    def exports_dir(self, name: str) -> Path:
        return self.project_dir(name) / "exports"

    def ensure_project(self, name: str) -> Path:
        """Create the project folders if needed and return the project directory."""

        self.runs_dir(name).mkdir(parents=True, exist_ok=True)
        self.exports_dir(name).mkdir(parents=True, exist_ok=True)
        return self.project_dir(name)

    def list_projects(self) -> list[str]:
        if not self.projects_dir.is_dir():
            return []
        return sorted(p.name for p in self.projects_dir.iterdir() if p.is_dir())

    def latest_run(self, name: str) -> Path | None:
        """Most recent run directory of a project (run ids sort chronologically)."""

        runs_dir = self.runs_dir(name)
        if not runs_dir.is_dir():
            return None
        runs = sorted(p for p in runs_dir.iterdir() if p.is_dir())
        return runs[-1] if runs else None
