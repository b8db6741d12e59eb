"""
Project repository.

Projects are ordered by position. New projects go to the end of the active
list; archiving only stamps archived_at, the row stays in place.
"""
import logging
from typing import List, Sequence

from .errors import NotFound
from .mappers import row_to_project
from .schema import Project
from .store import NOW_SQL, Store, UpdateBuilder
from .validation import CreateProjectRequest, ProjectPatch, ReorderItem, check_id

logger = logging.getLogger(__name__)


class ProjectRepository:
    """CRUD, reordering and archival for projects."""

    def __init__(self, store: Store):
        self.store = store

    def list(self, include_archived: bool = False) -> List[Project]:
        """Projects by position; archived ones interleave by position when included."""
        if include_archived:
            rows = self.store.fetch_all("SELECT * FROM projects ORDER BY position ASC, id ASC")
        else:
            rows = self.store.fetch_all(
                "SELECT * FROM projects WHERE archived_at IS NULL ORDER BY position ASC, id ASC"
            )
        return [row_to_project(row) for row in rows]

    def get(self, project_id: int) -> Project:
        project_id = check_id(project_id)
        row = self.store.fetch_one("SELECT * FROM projects WHERE id = ?", (project_id,))
        if row is None:
            raise NotFound("Project", project_id)
        return row_to_project(row)

    def next_position(self) -> int:
        row = self.store.fetch_one(
            "SELECT MAX(position) AS max_position FROM projects WHERE archived_at IS NULL"
        )
        max_position = row["max_position"] if row else None
        return 0 if max_position is None else max_position + 1

    def create(self, request: CreateProjectRequest) -> Project:
        """Insert a project at the end of the active list."""
        with self.store.transaction():
            position = self.next_position()
            row = self.store.fetch_one(
                "INSERT INTO projects (name, color, icon, position) VALUES (?, ?, ?, ?) RETURNING *",
                (request.name, request.color, request.icon, position),
            )
        project = row_to_project(row)
        logger.info(f"Created project {project.id} '{project.name}' at position {position}")
        return project

    def update(self, project_id: int, patch: ProjectPatch) -> Project:
        """
        Apply the fields present in patch.

        An empty patch returns the stored project untouched (updated_at is
        not bumped). Raises NotFound when no project has this id.
        """
        project_id = check_id(project_id)
        if patch.is_empty():
            return self.get(project_id)

        builder = UpdateBuilder("projects")
        for column, value in patch.present().items():
            builder.set(column, value)
        row = builder.execute(self.store, project_id)
        if row is None:
            raise NotFound("Project", project_id)
        return row_to_project(row)

    def archive(self, project_id: int) -> Project:
        project_id = check_id(project_id)
        row = self.store.fetch_one(
            f"UPDATE projects SET archived_at = {NOW_SQL}, updated_at = {NOW_SQL} "
            "WHERE id = ? RETURNING *",
            (project_id,),
        )
        if row is None:
            raise NotFound("Project", project_id)
        logger.info(f"Archived project {project_id}")
        return row_to_project(row)

    def unarchive(self, project_id: int) -> Project:
        return self.update(project_id, ProjectPatch(archived_at=None))

    def reorder(self, order: Sequence[ReorderItem]) -> None:
        """
        Assign every position in one transaction.

        Positions are written verbatim. If the store rejects any update the
        whole batch is rolled back and the error propagates. Ids with no
        matching project update nothing.
        """
        with self.store.transaction():
            for item in order:
                self.store.execute(
                    f"UPDATE projects SET position = ?, updated_at = {NOW_SQL} WHERE id = ?",
                    (item.position, item.id),
                )
        logger.debug(f"Reordered {len(order)} projects")

    def delete(self, project_id: int) -> None:
        """Physically remove a project; its tasks go with it (ON DELETE CASCADE)."""
        project_id = check_id(project_id)
        cursor = self.store.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        if cursor.rowcount == 0:
            raise NotFound("Project", project_id)
        logger.info(f"Deleted project {project_id}")
