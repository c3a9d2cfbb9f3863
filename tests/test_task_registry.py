"""Tests for the task registry."""

import pytest

from ci_task_runner.errors import CyclicDependencyError, UnknownTaskError
from ci_task_runner.tasks.base import Task, TaskDetails, TaskRegistry


class StubTask(Task):
    def __init__(self, name: str, *prerequisites: str) -> None:
        self._name = name
        self.prerequisites = prerequisites

    @property
    def name(self) -> str:
        return self._name

    def ready(self, template_id: str, details: TaskDetails) -> bool:
        return False

    def run(self, template_id: str, details: TaskDetails) -> None:
        pass


def _registry(*tasks: Task) -> TaskRegistry:
    reg = TaskRegistry()
    for task in tasks:
        reg.register(task)
    return reg


class TestTaskRegistry:
    def test_get_registered(self):
        task = StubTask("build")
        reg = _registry(task)
        assert reg.get("build") is task
        assert reg.has("build")
        assert len(reg) == 1

    def test_get_unknown_raises(self):
        reg = _registry(StubTask("build"), StubTask("test"))
        with pytest.raises(UnknownTaskError, match="Unknown task 'deploy'") as excinfo:
            reg.get("deploy")
        assert excinfo.value.available == ["build", "test"]

    def test_duplicate_rejected(self):
        reg = _registry(StubTask("build"))
        with pytest.raises(ValueError, match="already registered"):
            reg.register(StubTask("build"))

    def test_list_tasks_sorted(self):
        reg = _registry(StubTask("smoke"), StubTask("build"))
        assert reg.list_tasks() == ["build", "smoke"]

    def test_task_without_name_is_abstract(self):
        class Nameless(Task):
            def ready(self, template_id, details):
                return False

            def run(self, template_id, details):
                pass

        with pytest.raises(TypeError):
            Nameless()


class TestCycleDetection:
    def test_acyclic_chain(self):
        reg = _registry(StubTask("a", "b"), StubTask("b", "c"), StubTask("c"))
        assert reg.find_cycle() is None
        reg.validate()

    def test_diamond_is_acyclic(self):
        reg = _registry(StubTask("a", "b", "c"), StubTask("b", "d"), StubTask("c", "d"), StubTask("d"))
        assert reg.find_cycle() is None

    def test_finds_cycle(self):
        reg = _registry(StubTask("a", "b"), StubTask("b", "c"), StubTask("c", "a"))
        assert reg.find_cycle() == ["a", "b", "c", "a"]
        with pytest.raises(CyclicDependencyError, match="a -> b -> c -> a"):
            reg.validate()

    def test_finds_self_cycle(self):
        reg = _registry(StubTask("a", "a"))
        assert reg.find_cycle() == ["a", "a"]

    def test_validate_unknown_prerequisite(self):
        reg = _registry(StubTask("a", "ghost"))
        with pytest.raises(UnknownTaskError, match="ghost"):
            reg.validate()

    def test_unknown_prerequisite_does_not_break_cycle_search(self):
        reg = _registry(StubTask("a", "ghost"))
        assert reg.find_cycle() is None
