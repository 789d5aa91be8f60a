"""pcpsearch causal structure learning with false discovery rate control."""

# License: GNU General Public License v3.0

import threading
from collections import deque


class OracleCI:
    r"""Oracle of conditional independence test X _|_ Y | Z given a graph.

    X _|_ Y | Z is based on assessing whether X and Y are d-separated given Z
    in a directed acyclic graph.

    Class can be used just like a pcpsearch conditional independence class
    (e.g., ParCorr). The main use is for unit testing of the PCP search.

    Parameters
    ----------
    graph : Graph
        Causal DAG. All edges must be directed.
    observed_vars : None or list of Node, optional (default: None)
        Subset of graph nodes that are observed. If None, then all variables
        are observed.
    alpha : float, optional (default: 0.01)
        Significance level reported to the search. Oracle p-values are 0 or 1.
    verbosity : int, optional (default: 0)
        Level of verbosity.
    """

    # documentation
    @property
    def measure(self):
        """
        Concrete property to return the measure of the independence test
        """
        return self._measure

    def __init__(self,
                 graph,
                 observed_vars=None,
                 alpha=0.01,
                 verbosity=0):

        for (x, y, link) in graph.get_edges():
            if link not in ['-->', '<--']:
                raise ValueError("OracleCI requires a DAG, found %s %s %s."
                                 % (x, link, y))
        if graph.has_directed_cycle():
            raise ValueError("OracleCI requires a DAG, graph has a cycle.")

        self.graph = graph
        self.verbosity = verbosity
        self.alpha = alpha
        self._measure = 'oracle_ci'
        self.lock = threading.RLock()

        if observed_vars is None:
            observed_vars = list(graph.nodes)
        for node in observed_vars:
            graph.node_index(node)
        self.observed_vars = list(observed_vars)

        # Initialize already computed dsepsets of X, Y, Z
        self.dsepsets = {}

    def set_dataframe(self, dataframe):
        """Dummy function."""
        pass

    def get_variables(self):
        """Returns the observed nodes."""
        return list(self.observed_vars)

    def _get_parents(self, node):
        return [w for w in self.graph.adjacent_nodes(node)
                if self.graph.is_directed(w, node)]

    def _get_children(self, node):
        return [w for w in self.graph.adjacent_nodes(node)
                if self.graph.is_directed(node, w)]

    def _get_ancestors(self, W):
        """Returns the set of W and all its ancestors."""
        ancestors = set(W)
        fringe = list(W)
        while fringe:
            node = fringe.pop()
            for parent in self._get_parents(node):
                if parent not in ancestors:
                    ancestors.add(parent)
                    fringe.append(parent)
        return ancestors

    def _is_dsep(self, X, Y, Z):
        """Returns whether X and Y are d-separated given Z in the graph.

        Breadth-first search over (node, direction) states of paths starting
        at X: a path arriving at a node from a parent ('down') may continue to
        children if the node is not in Z, and to parents only if the node is
        an ancestor of Z (open collider); a path arriving from a child ('up')
        may continue anywhere if the node is not in Z.

        Parameters
        ----------
        X, Y, Z : list of Node
            Variables of the test.

        Returns
        -------
        dseparated : bool
            True if X and Y are d-separated given Z in the graph.
        """
        Z = set(Z)
        Y = set(Y)
        ancestors_of_z = self._get_ancestors(Z)

        fringe = deque((x, 'up') for x in X)
        visited = set()
        while fringe:
            node, direction = fringe.popleft()
            if (node, direction) in visited:
                continue
            visited.add((node, direction))

            if node not in Z and node in Y:
                return False

            if direction == 'up' and node not in Z:
                for parent in self._get_parents(node):
                    fringe.append((parent, 'up'))
                for child in self._get_children(node):
                    fringe.append((child, 'down'))
            elif direction == 'down':
                if node not in Z:
                    for child in self._get_children(node):
                        fringe.append((child, 'down'))
                if node in ancestors_of_z:
                    for parent in self._get_parents(node):
                        fringe.append((parent, 'up'))

        return True

    def run_test(self, X, Y, Z=None, alpha_or_thres=None):
        """Perform oracle conditional independence test.

        Calls the d-separation function.

        Parameters
        ----------
        X, Y, Z : list of Node
            Variables of the test.
        alpha_or_thres : float
            Not used here.

        Returns
        -------
        val, pval, dependent : Tuple of floats and bool
            The test statistic value, the p-value and the test decision.
        """

        if Z is None:
            Z = []

        with self.lock:
            key = (frozenset([frozenset(X), frozenset(Y)]), frozenset(Z))
            if key not in self.dsepsets:
                self.dsepsets[key] = self._is_dsep(X, Y, Z)

            if self.dsepsets[key]:
                val = 0.
                pval = 1.
                dependent = False
            else:
                val = 1.
                pval = 0.
                dependent = True

        if self.verbosity > 1:
            print("        %s _|_ %s | %s : pval = %.1f" % (
                [str(x) for x in X], [str(y) for y in Y],
                [str(z) for z in Z], pval))

        return val, pval, dependent
