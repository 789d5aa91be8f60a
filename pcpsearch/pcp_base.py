"""pcpsearch causal structure learning with false discovery rate control."""

# License: GNU General Public License v3.0

import numpy as np

from .graphs import iter_subsets


class PCPbase():
    r"""PCP base class.

    Holds the conditional independence test and the helpers shared by the
    phases of the PCP search: the test adapter, conditioning set
    enumeration, motif search in graphs and the false discovery rate cutoff.

    Parameters
    ----------
    cond_ind_test : conditional independence test object
        This can be ParCorr, Gsquared, OracleCI or any object with the
        attributes ``alpha`` and ``lock`` and the methods ``get_variables()``
        and ``run_test(X, Y, Z, alpha_or_thres)``. The test is shared, not
        copied: all calls are serialised under its lock.
    verbosity : int, optional (default: 0)
        Verbose levels 0, 1, ...

    Attributes
    ----------
    nodes : list of Node
        Variables of the search in the order given by the test.
    N : int
        Number of variables.
    var_names : list of str
        Names of the variables.
    """

    def __init__(self, cond_ind_test,
                 verbosity=0):
        if isinstance(cond_ind_test, type):
            raise ValueError("PCP requires that cond_ind_test "
                             "is instantiated, e.g. cond_ind_test =  "
                             "ParCorr().")
        self.cond_ind_test = cond_ind_test
        self.verbosity = verbosity

        self.nodes = list(self.cond_ind_test.get_variables())
        if len(set(self.nodes)) != len(self.nodes):
            raise ValueError("Variables of cond_ind_test must be distinct "
                             "nodes.")
        self.N = len(self.nodes)
        self.var_names = [str(node) for node in self.nodes]
        self._node_order = dict((node, i) for i, node in enumerate(self.nodes))

    def _check_q(self, q):
        """Checks the false discovery rate bound q."""
        if not (q >= 0. and q <= 1.):
            raise ValueError("q should be in [0, 1], got %s." % q)

    def _get_alpha(self):
        """Returns the independence threshold of the test."""
        alpha = self.cond_ind_test.alpha
        if not 0. < alpha < 1.:
            raise ValueError("alpha of cond_ind_test must be in (0, 1), "
                             "got %s." % alpha)
        return alpha

    def _run_ci_test(self, x, y, S, alpha):
        """Runs the test x _|_ y | S.

        Parameters
        ----------
        x, y : Node
            Tested variables.
        S : tuple of Node
            Conditioning set.
        alpha : float
            Independence threshold.

        Returns
        -------
        independent, pval : Tuple of bool and float
            independent = pval > alpha. For an undefined p-value, numpy.nan
            is returned together with independent = None; it must be
            treated as no evidence either way.
        """
        with self.cond_ind_test.lock:
            result = self.cond_ind_test.run_test(X=[x], Y=[y], Z=list(S),
                                                 alpha_or_thres=alpha)
        pval = result[1]

        if pval is None or np.isnan(pval):
            if self.verbosity > 1:
                self._print_cond_info(x, y, S, np.nan)
                print("        p-value undefined, ignored")
            return None, np.nan

        if self.verbosity > 1:
            self._print_cond_info(x, y, S, pval)
        return pval > alpha, pval

    def _order(self, node):
        return self._node_order[node]

    def _sorted_records(self, records):
        """Returns node tuples sorted by the variable order."""
        return sorted(records, key=lambda record: [self._order(n) for n in record])

    def _get_conditions_containing(self, graph, x, z, y, max_conds_dim=None):
        """Returns conditioning sets for x _|_ z that contain y.

        Candidates are all subsets of the neighbors of x (excluding z) and of
        the neighbors of z (excluding x) with at most max_conds_dim elements
        that contain y. Duplicates are dropped.

        Parameters
        ----------
        graph : Graph
            Graph whose adjacencies define the neighbors.
        x, z : Node
            Tested pair.
        y : Node
            Node every conditioning set must contain.
        max_conds_dim : int or None
            Maximum size of conditioning sets, unrestricted if None.

        Returns
        -------
        conditions : list of tuples
        """
        conditions = []
        seen = set()
        for node, other in [(x, z), (z, x)]:
            neighbors = [w for w in graph.adjacent_nodes(node) if w is not other]
            for S in iter_subsets(neighbors, max_dim=max_conds_dim, min_dim=1):
                if y in S and frozenset(S) not in seen:
                    seen.add(frozenset(S))
                    conditions.append(S)
        return conditions

    def _find_unshielded_triples(self, graph):
        """Find ordered triples (x, y, z) with x *-* y *-* z and x -/- z.

        Both (x, y, z) and (z, y, x) are returned.
        """
        triples = []
        for y in graph.nodes:
            adj_y = graph.adjacent_nodes(y)
            for x in adj_y:
                for z in adj_y:
                    if x is not z and not graph.is_adjacent(x, z):
                        triples.append((x, y, z))
        return triples

    def _find_triangles(self, graph):
        """Find ordered triples (y, x, z) that are pairwise adjacent."""
        triangles = []
        for x in graph.nodes:
            adj_x = graph.adjacent_nodes(x)
            for y in adj_x:
                for z in adj_x:
                    if y is not z and graph.is_adjacent(y, z):
                        triangles.append((y, x, z))
        return triangles

    def _find_kites(self, graph):
        """Find quadruples (y, x, w, z) where x and w are both adjacent to y
        and z, y *-* z, and x -/- w.
        """
        kites = []
        for y in graph.nodes:
            adj_y = graph.adjacent_nodes(y)
            for z in adj_y:
                common = [n for n in adj_y
                          if n is not z and graph.is_adjacent(n, z)]
                for x in common:
                    for w in common:
                        if x is not w and not graph.is_adjacent(x, w):
                            kites.append((y, x, w, z))
        return kites

    def _get_ambiguous_edges(self, graph, ambiguous):
        """Returns edges (x, y, link) of graph marked as ambiguous."""
        return [(x, y, link) for (x, y, link) in graph.get_edges()
                if (x, y) in ambiguous or (y, x) in ambiguous]

    def get_fdr_cutoff(self, pvals_sorted, alpha, q=1.):
        r"""Returns the Benjamini-Hochberg-Yekutieli type cutoff of ranked
        edge confidences.

        Notes
        -----
        With m sorted values :math:`p_1 \leq \dots \leq p_m` and the harmonic
        number :math:`H_m = \sum_{i=1}^m 1/i`, the discovery rank R is the
        largest rank with :math:`p_R < \alpha` (1 if there is none). Then

        .. math:: FDR = m \alpha H_m / R, \quad q_k = m p_k H_m / k

        and :math:`\alpha^* = p_j` for the rank j with the largest
        :math:`q_j \leq q` (the last one among ties). If no rank satisfies
        :math:`q_k \leq q`, which for q = 0 happens whenever all values are
        positive, j = 1 and :math:`\alpha^*` is the smallest value.

        Parameters
        ----------
        pvals_sorted : array-like
            Values sorted ascending, at least one.
        alpha : float
            Independence threshold.
        q : float, optional (default: 1.)
            Target bound in [0, 1].

        Returns
        -------
        cutoff : dict
            Dictionary with keys 'R', 'fdr', 'alpha_star', 'j', 'q_values'
            and 'harmonic'.
        """
        self._check_q(q)
        pvals_sorted = np.asarray(pvals_sorted, dtype='float64')
        m = len(pvals_sorted)
        if m == 0:
            raise ValueError("get_fdr_cutoff requires at least one value.")
        if np.any(np.diff(pvals_sorted) < 0.):
            raise ValueError("pvals_sorted must be sorted ascending.")

        ranks = np.arange(1, m + 1)
        harmonic = np.sum(1. / ranks)

        below = np.where(pvals_sorted < alpha)[0]
        if len(below) > 0:
            R = int(below[-1]) + 1
        else:
            R = 1

        fdr = m * alpha * harmonic / max(R, 1)

        q_values = m * pvals_sorted * harmonic / ranks
        eligible = np.where(q_values <= q)[0]
        if len(eligible) > 0:
            best = q_values[eligible].max()
            j = int(eligible[q_values[eligible] == best][-1]) + 1
        else:
            j = 1
        alpha_star = pvals_sorted[j - 1]

        return {'R': R,
                'fdr': fdr,
                'alpha_star': alpha_star,
                'j': j,
                'q_values': q_values,
                'harmonic': harmonic,
                }

    def _print_cond_info(self, x, y, S, pval):
        """Print info about the condition

        Parameters
        ----------
        x, y : Node
            Tested variables.
        S : tuple of Node
            Conditioning set.
        pval : float
            p-value.
        """
        print("        %s _|_ %s | {%s}: pval = %.5f" % (
            x, y, ", ".join(str(s) for s in S), pval))

    def _print_triple_info(self, triple, index, n_triples):
        """Print info about the current triple being tested.

        Parameters
        ----------
        triple : tuple
            Standard (x, y, z) tuple of nodes.
        index : int
            Index of triple.
        n_triples : int
            Total number of triples.
        """
        x, y, z = triple
        print("\n    Triple %s o-o %s o-o %s (%d/%d)" % (
            x, y, z, index + 1, n_triples))
