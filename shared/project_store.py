# vibeshare/shared/project_store.py

import json
import os
import re
import tempfile
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

from shared.config import settings
from shared.errors import NotFound, ValidationFailed
from shared.logging_config import setup_logger
from shared.models import Project, ProjectCreate

# Set up logger
logger = setup_logger(__name__)

PROJECT_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def validate_project_id(project_id: str) -> str:
    # The id doubles as a directory name, so only the canonical hex form is accepted
    if not isinstance(project_id, str) or not PROJECT_ID_RE.match(project_id):
        raise ValidationFailed("Invalid project ID format")
    return project_id


class ProjectStore:
    """
    Project metadata kept as one JSON document per project.

    Writes go through a temp file and os.replace so a reader never sees a
    half-written document. update() serializes read-modify-write cycles per
    project with a re-entrant lock.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        self._data_dir = data_dir
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @property
    def projects_dir(self) -> Path:
        base = Path(self._data_dir or settings.data_dir)
        path = base / "projects"
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _document_path(self, project_id: str) -> Path:
        return self.projects_dir / f"{validate_project_id(project_id)}.json"

    @contextmanager
    def lock(self, project_id: str) -> Iterator[None]:
        with self._locks_guard:
            project_lock = self._locks.setdefault(project_id, threading.RLock())
        with project_lock:
            yield

    def _write(self, project: Project) -> None:
        path = self._document_path(project.id)
        data = json.dumps(project.model_dump(mode="json", by_alias=True), indent=2)
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{project.id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def create(self, owner: str, data: ProjectCreate) -> Project:
        project = Project(owner=owner, **data.model_dump())
        with self.lock(project.id):
            self._write(project)
        logger.info(f"Created project {project.id} for user {owner}")
        return project

    def get(self, project_id: str) -> Project:
        path = self._document_path(project_id)
        if not path.exists():
            logger.debug(f"Project not found: {project_id}")
            raise NotFound("Project not found")
        return Project.model_validate(json.loads(path.read_text(encoding="utf-8")))

    def list_for_owner(self, owner: str) -> List[Project]:
        projects = []
        for path in self.projects_dir.glob("*.json"):
            try:
                project = Project.model_validate(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, ValueError) as e:
                logger.error(f"Skipping unreadable project document {path.name}: {e}")
                continue
            if project.owner == owner:
                projects.append(project)
        projects.sort(key=lambda p: p.created_at, reverse=True)
        logger.debug(f"Listed {len(projects)} projects for user {owner}")
        return projects

    def update(self, project_id: str, mutator: Callable[[Project], None]) -> Project:
        """Load, mutate and save one project while holding its lock."""
        with self.lock(project_id):
            project = self.get(project_id)
            mutator(project)
            project.updated_at = datetime.now(timezone.utc)
            self._write(project)
        return project

    def delete(self, project_id: str) -> None:
        with self.lock(project_id):
            path = self._document_path(project_id)
            if not path.exists():
                raise NotFound("Project not found")
            path.unlink()
        with self._locks_guard:
            self._locks.pop(project_id, None)
        logger.info(f"Deleted project document {project_id}")


project_store = ProjectStore()
