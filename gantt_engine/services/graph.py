"""
Dependency link graph using NetworkX.

This module handles:
- Link storage with duplicate and self-link rejection
- Cycle detection for new links, over link edges combined with the task
  tree's parent -> descendant containment
- Predecessor/successor queries and on-demand validation of dangling links
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

import networkx as nx
from pydantic import ValidationError as PydanticValidationError

from gantt_engine.exceptions import (
    CycleDetectedError,
    DuplicateLinkError,
    NotFoundError,
    SelfLinkError,
    ValidationError,
)
from gantt_engine.logging_config import get_logger
from gantt_engine.models import Link, LinkType, TaskId, make_link_id
from gantt_engine.services.tree import TaskTree

logger = get_logger(__name__)


@dataclass
class TaskLinks:
    incoming: list[Link] = field(default_factory=list)
    outgoing: list[Link] = field(default_factory=list)


@dataclass
class LinkValidation:
    """Validation result for one link; reported, never raised."""
    link_id: str
    source: TaskId
    target: TaskId
    source_exists: bool
    target_exists: bool
    self_link: bool

    @property
    def valid(self) -> bool:
        return self.source_exists and self.target_exists and not self.self_link

    @property
    def errors(self) -> list[str]:
        errors = []
        if not self.source_exists:
            errors.append(f"Link {self.link_id}: source task {self.source} not found")
        if not self.target_exists:
            errors.append(f"Link {self.link_id}: target task {self.target} not found")
        if self.self_link:
            errors.append(f"Link {self.link_id}: self-referencing link")
        return errors


class CycleChecker:
    """
    Decides whether a proposed edge source -> target closes a cycle.

    Two rules:
    1. Containment: a link between a task and one of its own ancestors is
       contradictory, since the parent already spans the child.
    2. Reachability: the edge closes a cycle when ``target`` already reaches
       ``source`` through link edges combined with parent -> child edges.
    """

    def __init__(
        self,
        links: nx.DiGraph,
        is_ancestor: Callable[[TaskId, TaskId], bool] | None = None,
        containment: Callable[[], nx.DiGraph] | None = None,
    ):
        self.links = links
        self.is_ancestor = is_ancestor or (lambda ancestor, task: False)
        self.containment = containment

    @classmethod
    def for_tree(cls, links: nx.DiGraph, tree: TaskTree | None) -> "CycleChecker":
        if tree is None:
            return cls(links)
        return cls(links, tree.is_ancestor, tree.as_graph)

    def combined_graph(self) -> nx.DiGraph:
        if self.containment is None:
            return self.links
        return nx.compose(self.links, self.containment())

    def check(self, source: TaskId, target: TaskId) -> CycleDetectedError | None:
        """The error adding source -> target would raise, or None if the edge is safe."""
        if source == target:
            return CycleDetectedError(source, target, kind="graph", path=[source, target])
        if self.is_ancestor(target, source):
            return CycleDetectedError(source, target, kind="tree", path=[target, source])
        if self.is_ancestor(source, target):
            return CycleDetectedError(source, target, kind="tree", path=[source, target])

        graph = self.combined_graph()
        if target in graph and source in graph and nx.has_path(graph, target, source):
            path = nx.shortest_path(graph, target, source)
            return CycleDetectedError(source, target, kind="graph", path=[source] + path)
        return None

    def would_create_cycle(self, source: TaskId, target: TaskId) -> bool:
        return self.check(source, target) is not None

    def find_cycle(self) -> list[TaskId] | None:
        """A cycle among the link edges, as a node list, or None."""
        try:
            edges = nx.find_cycle(self.links)
        except nx.NetworkXNoCycle:
            return None
        return [edge[0] for edge in edges] + [edges[-1][1]]


def coerce_link(record: Link | Mapping[str, Any]) -> Link:
    if isinstance(record, Link):
        return record
    try:
        return Link.model_validate(record)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid link",
            details=[
                {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
                for err in exc.errors()
            ],
        )


class LinkGraph:
    """
    Links keyed by id, mirrored into a DiGraph (source -> target) whose edges
    remember which link ids they carry.
    """

    def __init__(self, tree: TaskTree | None = None):
        self.tree = tree
        self._links: dict[str, Link] = {}
        self._graph = nx.DiGraph()

    # =========================================================================
    # Lookup
    # =========================================================================

    def __len__(self) -> int:
        return len(self._links)

    def __iter__(self):
        return iter(list(self._links.values()))

    def __contains__(self, link_id) -> bool:
        return link_id in self._links

    @property
    def links(self) -> list[Link]:
        return list(self._links.values())

    @property
    def checker(self) -> CycleChecker:
        return CycleChecker.for_tree(self._graph, self.tree)

    def as_graph(self) -> nx.DiGraph:
        return self._graph.copy()

    def get_link(self, link_id: str) -> Link:
        link = self._links.get(link_id)
        if link is None:
            raise NotFoundError("Link", link_id)
        return link

    def find(self, source: TaskId, target: TaskId, link_type: LinkType | None = None) -> list[Link]:
        return [
            link for link in self._links.values()
            if link.source == source and link.target == target
            and (link_type is None or link.type == link_type)
        ]

    def incoming(self, task_id: TaskId) -> list[Link]:
        return [link for link in self._links.values() if link.target == task_id]

    def outgoing(self, task_id: TaskId) -> list[Link]:
        return [link for link in self._links.values() if link.source == task_id]

    def links_of(self, task_id: TaskId) -> TaskLinks:
        return TaskLinks(incoming=self.incoming(task_id), outgoing=self.outgoing(task_id))

    def predecessors_of(self, task_id: TaskId) -> list[TaskId]:
        if task_id not in self._graph:
            return []
        return list(self._graph.predecessors(task_id))

    def successors_of(self, task_id: TaskId) -> list[TaskId]:
        if task_id not in self._graph:
            return []
        return list(self._graph.successors(task_id))

    def would_create_cycle(self, source: TaskId, target: TaskId) -> bool:
        return self.checker.would_create_cycle(source, target)

    # =========================================================================
    # Mutation
    # =========================================================================

    def add_link(
        self,
        source: TaskId,
        target: TaskId,
        link_type: LinkType | str = LinkType.FINISH_TO_START,
        lag: int = 0,
        link_id: str | None = None,
    ) -> Link:
        return self.add({"id": link_id, "source": source, "target": target, "type": link_type, "lag": lag})

    def prepare(self, record: Link | Mapping[str, Any]) -> Link:
        """
        Validate a new link without adding it.

        Raises SelfLinkError, NotFoundError (unknown task when a tree is
        attached), DuplicateLinkError or CycleDetectedError.
        """
        link = coerce_link(record)
        if link.source == link.target:
            logger.warning(f"Self-link rejected: {link.source}")
            raise SelfLinkError(link.source)

        if self.tree is not None:
            if link.source not in self.tree:
                raise NotFoundError("Source task", link.source)
            if link.target not in self.tree:
                raise NotFoundError("Target task", link.target)

        if self.find(link.source, link.target, link.type):
            logger.warning(f"Duplicate link rejected: {link.source} -> {link.target} ({link.type.short_name})")
            raise DuplicateLinkError(link.source, link.target, link.type.value)
        link = self._claim_id(link)

        logger.debug(f"Running cycle detection for {link.source} -> {link.target}")
        error = self.checker.check(link.source, link.target)
        if error is not None:
            logger.warning(
                f"Cycle detected: {link.source} -> {link.target} would create a {error.kind} cycle"
            )
            raise error
        return link

    def add(self, record: Link | Mapping[str, Any]) -> Link:
        link = self.prepare(record)
        self._insert(link)
        logger.info(f"Added link {link.id}: {link.source} -> {link.target} ({link.type.short_name}, lag={link.lag})")
        return link

    def _claim_id(self, link: Link) -> Link:
        """
        Return ``link`` with an id no stored link uses.

        Derived ids join source, target and type code with "_", so task ids
        containing "_" can give two different links the same id; the later
        one gets a numbered suffix. A repeated explicit id is a duplicate.
        """
        occupant = self._links.get(link.id)
        if occupant is None:
            return link
        derived = make_link_id(link.source, link.target, link.type)
        if occupant.key == link.key or link.id != derived:
            raise DuplicateLinkError(link.source, link.target, link.type.value)
        suffix = 2
        while f"{derived}-{suffix}" in self._links:
            suffix += 1
        return link.model_copy(update={"id": f"{derived}-{suffix}"})

    def _insert(self, link: Link) -> None:
        self._links[link.id] = link
        if self._graph.has_edge(link.source, link.target):
            self._graph.edges[link.source, link.target]["links"].add(link.id)
        else:
            self._graph.add_edge(link.source, link.target, links={link.id})

    def remove_link(self, link_id: str) -> Link:
        link = self.get_link(link_id)
        del self._links[link_id]
        carried = self._graph.edges[link.source, link.target]["links"]
        carried.discard(link_id)
        if not carried:
            self._graph.remove_edge(link.source, link.target)
        logger.info(f"Removed link {link_id}")
        return link

    def remove_link_between(
        self,
        source: TaskId,
        target: TaskId,
        link_type: LinkType | None = None,
    ) -> list[Link]:
        """Remove the links from source to target (of one type, or all types)."""
        found = self.find(source, target, link_type)
        if not found:
            raise NotFoundError("Link", f"{source}/{target}")
        return [self.remove_link(link.id) for link in found]

    def remove_links_for(self, task_ids: Iterable[TaskId]) -> list[Link]:
        """Drop every link touching one of ``task_ids``."""
        doomed = set(task_ids)
        touching = [
            link.id for link in self._links.values()
            if link.source in doomed or link.target in doomed
        ]
        removed = [self.remove_link(link_id) for link_id in touching]
        self._graph.remove_nodes_from([node for node in doomed if node in self._graph])
        return removed

    def load(self, records: Iterable[Link | Mapping[str, Any]], strict: bool = False) -> list[Link]:
        """
        Replace all links in one step.

        With ``strict`` every link goes through the same checks as ``add``
        (in order) and any failure leaves the current links untouched.
        Otherwise records are taken as-is, apart from repeated ids, and
        problems surface through ``validate``.
        """
        staged = LinkGraph(self.tree)
        for record in records:
            if strict:
                staged._insert(staged.prepare(record))
                continue
            staged._insert(staged._claim_id(coerce_link(record)))

        self._links = staged._links
        self._graph = staged._graph
        logger.info(f"Loaded {len(self._links)} links")
        return self.links

    def clear(self) -> None:
        self._links = {}
        self._graph = nx.DiGraph()

    def validate(self, valid_task_ids: Iterable[TaskId] | None = None) -> list[LinkValidation]:
        """Check every link against a task id set (the attached tree by default)."""
        if valid_task_ids is None:
            valid_task_ids = self.tree.ids() if self.tree is not None else []
        known = set(valid_task_ids)
        return [
            LinkValidation(
                link_id=link.id,
                source=link.source,
                target=link.target,
                source_exists=link.source in known,
                target_exists=link.target in known,
                self_link=link.source == link.target,
            )
            for link in self._links.values()
        ]

    def copy(self, tree: TaskTree | None = None) -> "LinkGraph":
        clone = LinkGraph(tree if tree is not None else self.tree)
        for link in self._links.values():
            clone._insert(link)
        return clone
