"""Task arena: tasks live in one job-wide list and refer to parents by position."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

from l3b_planner.errors import PlannerInvariantBroken


@dataclass
class Task:
    """A DAG node.  ``task_id`` and ``working_dir`` are only known after registration."""

    index: int
    module: str
    parents: List[int] = field(default_factory=list)
    task_id: Optional[int] = None
    working_dir: Optional[str] = None
    outputs: List[str] = field(default_factory=list)

    def path_for(self, name: str) -> str:
        """Path of output file *name* inside this task's working directory."""
        if self.working_dir is None:
            raise PlannerInvariantBroken(
                f"Task #{self.index} ({self.module}) has no working directory yet"
            )
        return os.path.join(self.working_dir, name)


@dataclass
class Step:
    """The concrete invocation the executor runs for one task."""

    task_index: int
    task_id: int
    name: str
    args: List[str] = field(default_factory=list)


class TaskGraph:
    """Ordered task list; insertion order is a topological order."""

    def __init__(self) -> None:
        self.tasks: List[Task] = []

    def __len__(self) -> int:
        return len(self.tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self.tasks)

    def __getitem__(self, index: int) -> Task:
        return self.tasks[index]

    def add(self, module: str, parents: Iterable[int] = ()) -> int:
        """Append a task and return its index.  Parents must already exist."""
        index = len(self.tasks)
        parent_list = list(parents)
        for p in parent_list:
            if not 0 <= p < index:
                raise PlannerInvariantBroken(
                    f"Parent #{p} of new task #{index} ({module}) does not precede it"
                )
        self.tasks.append(Task(index=index, module=module, parents=parent_list))
        return index

    def add_parent(self, child: int, parent: int) -> None:
        if not 0 <= parent < child < len(self.tasks):
            raise PlannerInvariantBroken(
                f"Cannot make #{parent} a parent of #{child}: parents must precede children"
            )
        if parent not in self.tasks[child].parents:
            self.tasks[child].parents.append(parent)

    def edges(self) -> List[Tuple[int, int]]:
        """``(child, parent)`` pairs in insertion order."""
        return [(t.index, p) for t in self.tasks for p in t.parents]

    def indices_of(self, module: str) -> List[int]:
        return [t.index for t in self.tasks if t.module == module]

    def ancestors(self, index: int) -> set[int]:
        seen: set[int] = set()
        stack = list(self.tasks[index].parents)
        while stack:
            p = stack.pop()
            if p not in seen:
                seen.add(p)
                stack.extend(self.tasks[p].parents)
        return seen

    def validate(self) -> None:
        """Check every parent precedes its child; raise with a dump otherwise."""
        for pos, task in enumerate(self.tasks):
            if task.index != pos:
                raise PlannerInvariantBroken(f"Task #{task.index} is stored out of place")
            for p in task.parents:
                if not 0 <= p < task.index:
                    raise PlannerInvariantBroken(
                        f"Parent #{p} of task #{task.index} ({task.module}) does not "
                        f"precede it\n{self.dump()}"
                    )

    def dump(self) -> str:
        lines = []
        for t in self.tasks:
            tid = "-" if t.task_id is None else str(t.task_id)
            lines.append(f"  #{t.index:<4} id={tid:<6} {t.module:<34} parents={t.parents}")
        return "\n".join(lines)
