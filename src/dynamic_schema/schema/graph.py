"""Field dependency graph.

Edges point from a dependent field to the field it depends on:

  approval_note --dependsOn--> amount

The graph is built once per schema load. Cycle detection runs at build time;
queries (dependents, available sources) walk the reverse edges.
"""

from dataclasses import dataclass, field

from dynamic_schema.schema.parser import FieldDefinition


@dataclass
class DependencyGraph:
    """Adjacency view of the dependsOn relation between field ids."""

    field_ids: list[str]
    depends_on: dict[str, str] = field(default_factory=dict)  # field id -> source field id
    dependents: dict[str, list[str]] = field(default_factory=dict)  # source id -> dependent ids
    dangling: dict[str, str] = field(default_factory=dict)  # field id -> missing source id
    cycles: list[list[str]] = field(default_factory=list)

    @classmethod
    def build(cls, fields: list[FieldDefinition]) -> "DependencyGraph":
        """Build the graph and detect dangling references and cycles."""
        field_ids = [f.id for f in fields]
        known = set(field_ids)
        graph = cls(field_ids=field_ids, dependents={field_id: [] for field_id in field_ids})

        for schema_field in fields:
            if schema_field.depends_on is None:
                continue
            source_id = schema_field.depends_on.field_id
            if source_id not in known:
                graph.dangling[schema_field.id] = source_id
                continue
            graph.depends_on[schema_field.id] = source_id
            graph.dependents[source_id].append(schema_field.id)

        graph.cycles = graph._find_cycles()
        return graph

    @property
    def is_acyclic(self) -> bool:
        return not self.cycles

    def _find_cycles(self) -> list[list[str]]:
        """Find every cycle in the graph.

        Each field has at most one outgoing edge, so following the chain from
        every unvisited field either terminates or re-enters the current path.
        """
        cycles: list[list[str]] = []
        state: dict[str, str] = {}  # "active" while on the current path, then "done"

        for start in self.field_ids:
            if start in state:
                continue
            path: list[str] = []
            current: str | None = start
            while current is not None and current not in state:
                state[current] = "active"
                path.append(current)
                current = self.depends_on.get(current)

            # Re-entered the path we are walking: the tail from `current` is a cycle
            if current is not None and state.get(current) == "active":
                cycles.append(path[path.index(current) :])

            for node in path:
                state[node] = "done"

        return cycles

    def transitive_dependents(self, field_id: str) -> set[str]:
        """Every field that depends on `field_id`, directly or through a chain."""
        found: set[str] = set()
        stack = list(self.dependents.get(field_id, []))
        while stack:
            current = stack.pop()
            if current in found:
                continue
            found.add(current)
            stack.extend(self.dependents.get(current, []))
        return found

    def dependency_chain(self, field_id: str) -> list[str]:
        """Fields `field_id` depends on, nearest first. Stops at a cycle."""
        chain: list[str] = []
        seen = {field_id}
        current = self.depends_on.get(field_id)
        while current is not None and current not in seen:
            chain.append(current)
            seen.add(current)
            current = self.depends_on.get(current)
        return chain

    def available_sources(self, target_field_id: str) -> list[str]:
        """Field ids that `target_field_id` may depend on without closing a cycle."""
        excluded = self.transitive_dependents(target_field_id)
        excluded.add(target_field_id)
        return [field_id for field_id in self.field_ids if field_id not in excluded]

    def would_create_cycle(self, field_id: str, source_field_id: str) -> bool:
        return source_field_id == field_id or source_field_id in self.transitive_dependents(
            field_id
        )
