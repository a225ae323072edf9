"""
Presentation state kept apart from the schedule data.

Expansion, selection, search and zoom only change which rows are shown and
how; they never touch the tasks themselves.
"""

from dataclasses import dataclass, field

from gantt_engine.models import Task, TaskId, ZoomLevel
from gantt_engine.services.tree import TaskTree


@dataclass
class ViewState:
    expanded: set[TaskId] = field(default_factory=set)
    selected_id: TaskId | None = None
    search_query: str = ""
    zoom_level: ZoomLevel = ZoomLevel.DAY
    start_collapsed: bool = True
    # Ids whose expansion has been initialised; user toggles on them are kept
    _known: set[TaskId] = field(default_factory=set, repr=False)

    @classmethod
    def for_tree(cls, tree: TaskTree, collapse: bool = True, zoom_level="day") -> "ViewState":
        state = cls(start_collapsed=collapse, zoom_level=ZoomLevel.parse(zoom_level))
        state.sync(tree)
        return state

    def sync(self, tree: TaskTree) -> None:
        """
        Initialise expansion for tasks seen for the first time and forget
        removed ones. A task starts expanded when its record says ``is_open``,
        otherwise when parents do not start collapsed.
        """
        current = set(tree.ids())
        for task_id in current - self._known:
            is_open = tree.get(task_id).is_open
            if is_open or (is_open is None and not self.start_collapsed):
                self.expanded.add(task_id)
        self._known = current
        self.expanded &= current
        if self.selected_id is not None and self.selected_id not in current:
            self.selected_id = None

    # Expansion

    def expand(self, task_id: TaskId) -> None:
        self.expanded.add(task_id)

    def collapse(self, task_id: TaskId) -> None:
        self.expanded.discard(task_id)

    def toggle(self, task_id: TaskId) -> bool:
        """Flip the state; returns the new expanded flag."""
        if task_id in self.expanded:
            self.expanded.discard(task_id)
            return False
        self.expanded.add(task_id)
        return True

    def is_expanded(self, task_id: TaskId) -> bool:
        return task_id in self.expanded

    def expand_all(self, tree: TaskTree) -> None:
        self.expanded = {task_id for task_id in tree.ids() if not tree.is_leaf(task_id)}

    def collapse_all(self) -> None:
        self.expanded = set()

    # Selection

    def select(self, task_id: TaskId) -> None:
        self.selected_id = task_id

    def deselect(self) -> None:
        self.selected_id = None

    def selected(self, tree: TaskTree) -> Task | None:
        if self.selected_id is None:
            return None
        return tree.find(self.selected_id)

    # Rows

    def set_search(self, query: str | None) -> None:
        self.search_query = (query or "").strip()

    def visible_rows(self, tree: TaskTree) -> list[Task]:
        """
        Rows to render: matches in tree order while searching, otherwise the
        flattened tree with collapsed subtrees skipped.
        """
        if self.search_query:
            return tree.search(self.search_query)
        return tree.flatten(expanded=self.is_expanded)
