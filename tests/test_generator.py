"""End-to-end tests for SchemaGenerator."""

import asyncio
import enum
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Optional

import pytest
from structlog.testing import capture_logs

from schemasmith import SchemaGenerator, ValidationCode, mutation, query, subscription
from schemasmith.config import GeneratorSettings
from schemasmith.kernel.discovery import PublicResolverBuilder
from schemasmith.kernel.errors import SchemaValidationError
from schemasmith.kernel.graph import STRING, FieldDefinition, Namespace, NonNull, ObjectType


class Status(enum.Enum):
    OPEN = "open"
    DONE = "done"


@dataclass
class Task:
    title: str
    status: Status = Status.OPEN


@dataclass
class TaskDraft:
    title: str
    status: Status = Status.OPEN


class TaskBoard:
    def __init__(self):
        self.tasks = [Task("Write docs"), Task("Ship it", Status.DONE)]

    @query
    def tasks_by_status(self, status: Optional[Status] = None) -> list[Task]:
        return [t for t in self.tasks if status is None or t.status is status]

    @mutation
    def create(self, draft: TaskDraft) -> Task:
        task = Task(draft.title, draft.status)
        self.tasks.append(task)
        return task

    @subscription
    async def completed(self, limit: int = 2) -> AsyncIterator[Task]:
        for task in self.tasks[:limit]:
            yield task


class StatelessBoard:
    name = "board"

    @query
    def greeting(self) -> str:
        return f"hello from {self.name}"


class OnlyMutations:
    @mutation
    def reset(self) -> bool:
        return True


class Confusing:
    @query(name="find")
    def by_name(self, name: Optional[str] = None) -> str:
        return "name"

    @query(name="find")
    def by_tag(self, tag: Optional[str] = None) -> str:
        return "tag"


class PublicBoard:
    def open_tasks(self) -> list[Task]:
        return [Task("Write docs")]

    def archive(self, title: str) -> None:
        pass


def test_generates_all_roots():
    schema = SchemaGenerator().with_operations_from_singleton(TaskBoard()).generate()

    assert list(schema.query.fields) == ["tasks_by_status"]
    assert list(schema.mutation.fields) == ["create"]
    assert list(schema.subscription.fields) == ["completed"]
    assert schema.subscription.fields["completed"].type.of_type is schema.get_type("Task")
    assert schema.report.ok
    assert schema.node_interface is None
    assert {"Query", "Mutation", "Subscription", "Task", "Status"} <= set(schema.output_types)
    assert {"TaskDraftInput", "Status"} <= set(schema.input_types)


def test_resolvers_convert_raw_arguments():
    board = TaskBoard()
    schema = SchemaGenerator().with_operations_from_singleton(board).generate()

    created = schema.mutation.fields["create"].resolve(None, draft={"title": "Test", "status": "done"})
    assert created == Task("Test", Status.DONE)
    done = schema.query.fields["tasks_by_status"].resolve(None, status=Status.DONE)
    assert [t.title for t in done] == ["Ship it", "Test"]


def test_subscription_yields_events():
    schema = SchemaGenerator().with_operations_from_singleton(TaskBoard()).generate()

    async def collect():
        stream = schema.subscription.fields["completed"].resolve(None, limit=1)
        return [task.title async for task in stream]

    assert asyncio.run(collect()) == ["Write docs"]


def test_type_source_receives_root_value():
    schema = SchemaGenerator().with_operations_from_type(StatelessBoard).generate()
    assert schema.query.fields["greeting"].resolve(StatelessBoard()) == "hello from board"


def test_public_builder_exposes_unmarked_members():
    schema = (
        SchemaGenerator()
        .with_operations_from_singleton(PublicBoard(), PublicResolverBuilder())
        .generate()
    )
    assert list(schema.query.fields) == ["open_tasks"]
    assert list(schema.mutation.fields) == ["archive"]
    # void mutations surface as Boolean! and report success
    assert schema.mutation.fields["archive"].type.of_type.name == "Boolean"
    assert schema.mutation.fields["archive"].resolve(None, title="Write docs") is True


def test_missing_query_root_is_fatal():
    with pytest.raises(SchemaValidationError) as exc_info:
        SchemaGenerator().with_operations_from_singleton(OnlyMutations()).generate()
    assert exc_info.value.code is ValidationCode.MISSING_QUERY_ROOT
    assert "MISSING_QUERY_ROOT" in str(exc_info.value)


def test_ambiguous_overloads_fail_validation():
    with pytest.raises(SchemaValidationError) as exc_info:
        SchemaGenerator().with_operations_from_singleton(Confusing()).generate()
    assert [e.code for e in exc_info.value.report.errors] == [ValidationCode.AMBIGUOUS_OVERLOAD]


def test_input_suffix_from_settings():
    schema = (
        SchemaGenerator(GeneratorSettings(input_type_suffix="Data"))
        .with_operations_from_singleton(TaskBoard())
        .generate()
    )
    assert schema.get_type("TaskDraftData", Namespace.INPUT) is not None
    assert schema.get_type("TaskDraftInput", Namespace.INPUT) is None


def test_additional_types_are_reused():
    task = ObjectType(
        "Task",
        description="Supplied",
        fields={"title": FieldDefinition("title", NonNull(STRING))},
        host_type=Task,
    )
    schema = (
        SchemaGenerator()
        .with_additional_types(task)
        .with_operations_from_singleton(PublicBoard(), PublicResolverBuilder())
        .generate()
    )
    assert schema.get_type("Task") is task
    assert schema.query.fields["open_tasks"].type.of_type.of_type.of_type is task


def test_base_packages_merge_builder_and_settings():
    settings = GeneratorSettings(base_packages=("acme", "shared"))
    generator = SchemaGenerator(settings).with_base_packages("acme.tasks", "acme")
    assert generator._base_packages() == ("acme.tasks", "acme", "shared")


def test_every_build_is_independent():
    generator = SchemaGenerator().with_operations_from_singleton(TaskBoard())
    first, second = generator.generate(), generator.generate()
    assert first.get_type("Task") is not second.get_type("Task")


def test_generation_is_logged():
    with capture_logs() as logs:
        SchemaGenerator().with_operations_from_singleton(TaskBoard()).generate()
    generated = [entry for entry in logs if entry["event"] == "Schema generated"]
    assert len(generated) == 1
    assert generated[0]["log_level"] == "info"
    assert generated[0]["abstract_types"] == 0
