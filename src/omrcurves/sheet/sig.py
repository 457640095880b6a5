"""
Symbol interpretation graph of a system.

Each system owns one graph; interpreted symbols are vertices keyed by their
id, with the symbol object stored as the "inter" node attribute.
"""

import networkx as nx


class SymbolGraph:
    """Thin wrapper over a networkx graph of interpreted symbols."""

    def __init__(self, system_id):
        self.system_id = system_id
        self.graph = nx.Graph(system_id=system_id)

    def add_vertex(self, inter):
        key = _inter_key(inter)
        self.graph.add_node(key, inter=inter, kind=type(inter).__name__)
        return key

    def vertices(self, kind=None):
        """Interpreted symbols in insertion order, optionally filtered by class name."""
        return [
            data["inter"]
            for _, data in self.graph.nodes(data=True)
            if kind is None or data["kind"] == kind
        ]

    def __contains__(self, inter):
        return _inter_key(inter) in self.graph

    def __len__(self):
        return self.graph.number_of_nodes()


def _inter_key(inter):
    for attr in ("wedge_id", "segment_id"):
        value = getattr(inter, attr, None)
        if value:
            return value
    return id(inter)
