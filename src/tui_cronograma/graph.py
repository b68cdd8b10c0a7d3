"""Dependency graph between tasks, backed by networkx."""

from __future__ import annotations

from datetime import date

import networkx as nx

from tui_cronograma.errors import CycleDetected, DuplicateEdge, EdgeNotFound, Result, TaskNotFound
from tui_cronograma.models import ScheduleSnapshot, Task


class DependencyGraph:
    """Directed acyclic graph: an edge A → B means A must end before B starts."""

    def __init__(self, tasks: dict[str, Task] | None = None) -> None:
        self._graph = nx.DiGraph()
        self._tasks: dict[str, Task] = dict(tasks or {})
        self._graph.add_nodes_from(self._tasks)

    @classmethod
    def from_snapshot(cls, snapshot: ScheduleSnapshot) -> DependencyGraph:
        """Build the graph from each task's ``depends_on`` list.

        Edges that would close a cycle or point at unknown tasks are skipped;
        stores validate their data before it reaches here.
        """
        graph = cls(snapshot.task_map())
        for task in snapshot.tasks:
            for dep_id in task.depends_on:
                graph.add_edge(dep_id, task.id)
        return graph

    def __contains__(self, task_id: str) -> bool:
        return task_id in self._tasks

    def has_edge(self, from_id: str, to_id: str) -> bool:
        return self._graph.has_edge(from_id, to_id)

    @property
    def edges(self) -> list[tuple[str, str]]:
        return list(self._graph.edges)

    def would_create_cycle(self, from_id: str, to_id: str) -> bool:
        """True if *to_id* is already *from_id* or one of its ancestors."""
        if from_id == to_id:
            return True
        return nx.has_path(self._graph, to_id, from_id)

    def add_edge(self, from_id: str, to_id: str) -> Result:
        for task_id in (from_id, to_id):
            if task_id not in self._tasks:
                return Result.failure(TaskNotFound(task_id))
        if self._graph.has_edge(from_id, to_id):
            return Result.failure(DuplicateEdge(from_id, to_id))
        if self.would_create_cycle(from_id, to_id):
            return Result.failure(CycleDetected(from_id, to_id))
        self._graph.add_edge(from_id, to_id)
        return Result.success((from_id, to_id))

    def remove_edge(self, from_id: str, to_id: str) -> Result:
        if not self._graph.has_edge(from_id, to_id):
            return Result.failure(EdgeNotFound(from_id, to_id))
        self._graph.remove_edge(from_id, to_id)
        return Result.success((from_id, to_id))

    def prerequisites(self, task_id: str) -> list[str]:
        return list(self._graph.predecessors(task_id)) if task_id in self._graph else []

    def dependents(self, task_id: str) -> list[str]:
        return list(self._graph.successors(task_id)) if task_id in self._graph else []

    def ancestors(self, task_id: str) -> set[str]:
        return nx.ancestors(self._graph, task_id) if task_id in self._graph else set()

    def descendants(self, task_id: str) -> set[str]:
        return nx.descendants(self._graph, task_id) if task_id in self._graph else set()

    def topological_order(self, subset: set[str] | None = None) -> list[str]:
        graph = self._graph if subset is None else self._graph.subgraph(subset)
        return list(nx.topological_sort(graph))

    def earliest_start(
        self, task_id: str, overrides: dict[str, Task] | None = None
    ) -> date | None:
        """Latest end date among direct prerequisites, or None without any.

        *overrides* lets callers evaluate a hypothetical placement.
        """
        overrides = overrides or {}
        ends = [
            overrides.get(dep_id, self._tasks[dep_id]).end
            for dep_id in self.prerequisites(task_id)
        ]
        return max(ends) if ends else None

    def latest_prerequisite(
        self, task_id: str, overrides: dict[str, Task] | None = None
    ) -> str | None:
        """Id of the prerequisite that ends last (the binding constraint)."""
        overrides = overrides or {}
        best: tuple[date, str] | None = None
        for dep_id in self.prerequisites(task_id):
            end = overrides.get(dep_id, self._tasks[dep_id]).end
            if best is None or end > best[0]:
                best = (end, dep_id)
        return best[1] if best else None
