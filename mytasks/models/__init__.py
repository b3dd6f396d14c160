"""
ORM model package. Import all models here so Alembic autogenerate
can discover every table through the shared Base metadata.
"""
from mytasks.models.task import Task  # noqa: F401
