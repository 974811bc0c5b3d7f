"""Project repository for data access operations."""

import logging
from typing import List, Optional

from document_retrieval.database.data_context import Row
from document_retrieval.models.project import Project, ProjectFilters, ProjectUpdate
from document_retrieval.repositories.base import BaseRepository, as_str
from document_retrieval.repositories.document_repository import (
    DOCUMENT_COLUMNS,
    map_row_to_document,
)
from document_retrieval.repositories.materializer import append_to, materialize
from document_retrieval.repositories.predicates import (
    Assignment,
    Conjunction,
    FilterField,
    FilterKind,
    ParameterList,
    compile_assignments,
    compile_filters,
)

logger = logging.getLogger(__name__)

PROJECT_COLUMNS = """project.id AS project_id,
    project.title AS project_title,
    project.description AS project_description,
    project.user_id AS project_user_id,
    project.created_at AS project_created_at,
    project.updated_at AS project_updated_at"""

PROJECT_FILTER_FIELDS = (
    FilterField("id", "project.id"),
    FilterField("ids", "project.id", FilterKind.ANY),
    FilterField("title", "project.title", FilterKind.ILIKE),
    FilterField("user_id", "project.user_id"),
)

PROJECT_ASSIGNMENTS = (
    Assignment("title", "title"),
    Assignment("description", "description", nullable=True),
)

PROJECT_ORDER = "project.created_at DESC, project.id"


def map_row_to_project(row: Row) -> Project:
    """Build a Project from ``project_*`` aliased columns."""
    return Project(
        id=as_str(row["project_id"]),
        title=row["project_title"],
        description=row["project_description"],
        user_id=as_str(row["project_user_id"]),
        created_at=row.get("project_created_at"),
        updated_at=row.get("project_updated_at"),
    )


class ProjectRepository(BaseRepository):
    """Repository for project data access operations."""

    entity = "Project"

    async def exists(self, filters: Optional[ProjectFilters] = None) -> bool:
        """Check whether any project matches all present filters."""
        params = ParameterList()
        predicate = compile_filters(filters, PROJECT_FILTER_FIELDS, params)
        rows = await self._query(
            "check existence of",
            f"""SELECT 1
FROM "project"
WHERE {predicate.clause()}
LIMIT 1;""",
            params.values,
        )
        return len(rows) > 0

    async def count(self, filters: Optional[ProjectFilters] = None) -> int:
        """Count projects matching all present filters."""
        params = ParameterList()
        predicate = compile_filters(filters, PROJECT_FILTER_FIELDS, params)
        rows = await self._query(
            "count",
            f"""SELECT COUNT(*) AS count
FROM "project"
WHERE {predicate.clause()};""",
            params.values,
        )
        return int(rows[0]["count"]) if rows else 0

    async def find_all(self, filters: Optional[ProjectFilters] = None) -> List[Project]:
        """
        Get projects matching all present filters, newest first.

        With ``include_documents`` each project carries its documents in
        creation order; a project without documents keeps ``documents=None``.
        """
        return await self._find(filters, Conjunction.AND)

    async def find_any(self, filters: Optional[ProjectFilters] = None) -> List[Project]:
        """Get projects matching at least one present filter, newest first."""
        return await self._find(filters, Conjunction.OR)

    async def find_one(self, filters: Optional[ProjectFilters] = None) -> Optional[Project]:
        """
        Get the first project matching all present filters, or None.

        The project is picked inside a CTE before the document join so the
        LIMIT counts projects, not joined rows.
        """
        include_documents = bool(filters and filters.include_documents)
        params = ParameterList()
        predicate = compile_filters(filters, PROJECT_FILTER_FIELDS, params)

        if not include_documents:
            rows = await self._query(
                "retrieve",
                f"""SELECT
    {PROJECT_COLUMNS}
FROM "project"
WHERE {predicate.clause()}
ORDER BY {PROJECT_ORDER}
LIMIT 1;""",
                params.values,
            )
            return map_row_to_project(rows[0]) if rows else None

        rows = await self._query(
            "retrieve",
            f"""WITH selected_project AS (
    SELECT *
    FROM "project"
    WHERE {predicate.clause()}
    ORDER BY {PROJECT_ORDER}
    LIMIT 1
)
SELECT
    {PROJECT_COLUMNS},
    {DOCUMENT_COLUMNS}
FROM selected_project AS project
LEFT JOIN "document" ON document.project_id = project.id
ORDER BY {PROJECT_ORDER}, document.created_at, document.id;""",
            params.values,
        )
        projects = self._materialize(rows, include_documents=True)
        return projects[0] if projects else None

    async def _find(
        self,
        filters: Optional[ProjectFilters],
        conjunction: Conjunction,
    ) -> List[Project]:
        include_documents = bool(filters and filters.include_documents)
        params = ParameterList()
        predicate = compile_filters(filters, PROJECT_FILTER_FIELDS, params)

        if include_documents:
            sql = f"""SELECT
    {PROJECT_COLUMNS},
    {DOCUMENT_COLUMNS}
FROM "project"
LEFT JOIN "document" ON document.project_id = project.id
WHERE {predicate.clause(conjunction)}
ORDER BY {PROJECT_ORDER}, document.created_at, document.id;"""
        else:
            sql = f"""SELECT
    {PROJECT_COLUMNS}
FROM "project"
WHERE {predicate.clause(conjunction)}
ORDER BY {PROJECT_ORDER};"""

        rows = await self._query("retrieve", sql, params.values)
        return self._materialize(rows, include_documents)

    async def create(self, project: Project) -> None:
        """Insert a new project record."""
        await self._execute(
            "create",
            """INSERT INTO "project"
(id, title, description, user_id)
VALUES
($1, $2, $3, $4);""",
            [project.id, project.title, project.description, project.user_id],
        )
        logger.debug(f"Created Project with ID: {project.id}")

    async def update(self, id: str, changes: ProjectUpdate) -> bool:
        """
        Apply a partial update.

        Returns:
            True if a project was updated, False if not found
        """
        params = ParameterList()
        assignments = ",\n    ".join(compile_assignments(changes, PROJECT_ASSIGNMENTS, params))
        id_placeholder = params.bind(id)
        count = await self._execute(
            "update",
            f"""UPDATE "project"
SET
    {assignments}
WHERE id = {id_placeholder};""",
            params.values,
        )
        logger.debug(f"Updated Project with ID: {id}")
        return count > 0

    async def delete(self, id: str) -> bool:
        """Delete a project by ID. Its documents go with it (ON DELETE CASCADE)."""
        count = await self._execute(
            "delete",
            """DELETE FROM "project"
WHERE id = $1;""",
            [id],
        )
        logger.debug(f"Deleted Project with ID: {id}")
        return count > 0

    @staticmethod
    def _materialize(rows: List[Row], include_documents: bool) -> List[Project]:
        if not include_documents:
            return materialize(rows, "project_id", map_row_to_project)
        return materialize(
            rows,
            "project_id",
            map_row_to_project,
            child_key="document_id",
            build_child=map_row_to_document,
            attach_child=append_to("documents"),
        )
