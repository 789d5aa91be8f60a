"""pcpsearch causal structure learning with false discovery rate control."""

# License: GNU General Public License v3.0

import itertools
import numpy as np


class Node():
    """Variable handle used as vertex in a Graph.

    Nodes are compared by identity: two nodes with the same name are
    different variables unless they are the same object.

    Parameters
    ----------
    name : str
        Name of the variable, used for printing only.
    """

    def __init__(self, name):
        self.name = str(name)

    def __repr__(self):
        return "Node(%s)" % self.name

    def __str__(self):
        return self.name


class Graph():
    r"""Graph over identity-compared nodes with typed edges.

    The graph is stored as a string array of shape [N, N] of links:
    ``graph[i, j]`` is the link from node i to node j and ``graph[j, i]`` is
    always its reverse. Supported links are

    * ``''``    no edge
    * ``'o-o'`` undirected edge
    * ``'-->'`` directed edge i --> j (``graph[j, i] == '<--'``)
    * ``'<->'`` bidirected edge, used to mark an orientation conflict

    At most one edge exists per unordered pair of nodes.

    Parameters
    ----------
    nodes : list of Node, optional (default: None)
        Initial nodes. Order determines the iteration order of all queries.
    """

    ARROW = '>'
    TAIL = '-'

    _links = {(False, False): 'o-o',
              (False, True): '-->',
              (True, False): '<--',
              (True, True): '<->'}

    def __init__(self, nodes=None):
        self.nodes = []
        self._index = {}
        self.graph = np.zeros((0, 0), dtype='<U3')
        if nodes is not None:
            for node in nodes:
                self.add_node(node)

    @classmethod
    def complete(cls, nodes):
        """Returns the complete undirected graph over nodes."""
        graph = cls(nodes)
        N = len(graph.nodes)
        graph.graph[:, :] = 'o-o'
        graph.graph[range(N), range(N)] = ''
        return graph

    @property
    def N(self):
        return len(self.nodes)

    def add_node(self, node):
        """Adds a node without edges. Adding a node twice is an error."""
        if node in self._index:
            raise ValueError("Node %s already in graph." % node)
        self._index[node] = len(self.nodes)
        self.nodes.append(node)
        N = len(self.nodes)
        new_graph = np.zeros((N, N), dtype='<U3')
        new_graph[:N - 1, :N - 1] = self.graph
        self.graph = new_graph

    def node_index(self, node):
        """Returns the position of node in the node order."""
        try:
            return self._index[node]
        except KeyError:
            raise ValueError("Node %s not in graph." % node)

    def _reverse_link(self, link):
        """Reverse a given link, taking care to replace > with < and vice versa."""

        if link == "":
            return ""

        if link[2] == ">":
            left_mark = "<"
        else:
            left_mark = link[2]

        if link[0] == "<":
            right_mark = ">"
        else:
            right_mark = link[0]

        return left_mark + link[1] + right_mark

    def _get_pair(self, x, y):
        i, j = self.node_index(x), self.node_index(y)
        if i == j:
            raise ValueError("Self-loops are not allowed (%s)." % x)
        return i, j

    def _set_link(self, x, y, link):
        i, j = self._get_pair(x, y)
        self.graph[i, j] = link
        self.graph[j, i] = self._reverse_link(link)

    def get_link(self, x, y):
        """Returns the link string from x to y, '' if not adjacent."""
        i, j = self._get_pair(x, y)
        return self.graph[i, j]

    def add_undirected_edge(self, x, y):
        """Sets x o-o y, replacing any existing edge between x and y."""
        self._set_link(x, y, 'o-o')

    def add_directed_edge(self, x, y):
        """Sets x --> y, replacing any existing edge between x and y."""
        self._set_link(x, y, '-->')

    def add_bidirected_edge(self, x, y):
        """Sets x <-> y, replacing any existing edge between x and y."""
        self._set_link(x, y, '<->')

    def remove_edge(self, x, y):
        """Removes the edge between x and y if present."""
        self._set_link(x, y, '')

    def set_endpoint(self, x, y, mark):
        """Sets the mark at y of the existing edge between x and y.

        Putting an arrowhead at y of x o-o y gives x --> y, and of
        x <-- y gives the conflict marker x <-> y.

        Parameters
        ----------
        x, y : Node
            Nodes of an existing edge.
        mark : {'>', '-'}
            Arrowhead or tail.
        """
        if mark not in [self.ARROW, self.TAIL]:
            raise ValueError("mark must be '>' or '-', not %s" % mark)
        link = self.get_link(x, y)
        if link == '':
            raise ValueError("No edge between %s and %s." % (x, y))
        arrow_at_x = link[0] == '<'
        arrow_at_y = mark == self.ARROW
        self._set_link(x, y, self._links[(arrow_at_x, arrow_at_y)])

    def is_adjacent(self, x, y):
        return self.get_link(x, y) != ''

    def is_directed(self, x, y):
        """True if the edge is x --> y."""
        return self.get_link(x, y) == '-->'

    def is_undirected(self, x, y):
        return self.get_link(x, y) == 'o-o'

    def is_bidirected(self, x, y):
        return self.get_link(x, y) == '<->'

    def adjacent_nodes(self, x):
        """Returns the nodes adjacent to x in node order."""
        i = self.node_index(x)
        return [self.nodes[j] for j in np.where(self.graph[i] != '')[0]]

    def nodes_into(self, x):
        """Returns the nodes w with an arrowhead at x on the edge w *-> x."""
        i = self.node_index(x)
        return [self.nodes[j] for j in np.where(
                np.char.endswith(self.graph[:, i], '>'))[0]]

    def degree(self, x):
        return len(self.adjacent_nodes(x))

    def max_degree(self):
        """Returns the maximum degree over all nodes, 0 for an empty graph."""
        if self.N == 0:
            return 0
        return int((self.graph != '').sum(axis=1).max())

    def get_edges(self):
        """Returns list of (x, y, link) with x before y in node order."""
        edges = []
        for i, j in zip(*np.where(self.graph != '')):
            if i < j:
                edges.append((self.nodes[i], self.nodes[j], self.graph[i, j]))
        return edges

    def get_dict_from_graph(self):
        """Helper function to convert graph to dictionary of links.

        Returns
        -------
        links : dict
            Dictionary of form {y: {x: link_from_x_to_y, ...}, ...} using
            variable names as keys.
        """
        links = dict([(str(node), {}) for node in self.nodes])
        for i, j in zip(*np.where(self.graph != '')):
            links[str(self.nodes[j])][str(self.nodes[i])] = self.graph[i, j]
        return links

    def has_directed_cycle(self):
        """Return True if the directed edges of the graph contain a cycle."""

        path = set()
        visited = set()

        def visit(vertex):
            if vertex in visited:
                return False
            visited.add(vertex)
            path.add(vertex)
            for child in np.where(self.graph[vertex] == '-->')[0]:
                if child in path or visit(child):
                    return True
            path.remove(vertex)
            return False

        return any(visit(v) for v in range(self.N))

    def copy(self):
        new = Graph()
        new.nodes = list(self.nodes)
        new._index = dict(self._index)
        new.graph = np.copy(self.graph)
        return new

    def __eq__(self, other):
        if not isinstance(other, Graph):
            return NotImplemented
        return (self.nodes == other.nodes
                and np.array_equal(self.graph, other.graph))

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def __str__(self):
        lines = ["Graph nodes: %s" % ", ".join(str(n) for n in self.nodes),
                 "Graph edges:"]
        for index, (x, y, link) in enumerate(self.get_edges()):
            lines.append("%d. %s %s %s" % (index + 1, x, link, y))
        return "\n".join(lines)


def iter_subsets(candidates, max_dim=None, min_dim=0):
    """Yield all subsets of candidates with min_dim <= size <= max_dim.

    Subsets are tuples in the order of candidates, ordered by size and then
    lexicographically, so the sequence is independent of set iteration order.
    """
    candidates = list(candidates)
    if max_dim is None:
        max_dim = len(candidates)
    for dim in range(min_dim, min(max_dim, len(candidates)) + 1):
        for subset in itertools.combinations(candidates, dim):
            yield subset
