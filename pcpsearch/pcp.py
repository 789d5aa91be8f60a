"""pcpsearch causal structure learning with false discovery rate control."""

# License: GNU General Public License v3.0

import time
import warnings
from collections import defaultdict, deque
import itertools
import numpy as np

from .graphs import Graph
from .pcp_base import PCPbase


class PCP(PCPbase):
    r"""PCP causal discovery with edge confidences and FDR pruning.

    PCP is a PC-style constraint based search that keeps track of the
    p-values behind every decision. Each edge of the output pattern receives
    a confidence value (an upper bound on the probability that the edge is an
    error) derived from the p-values of the tests that created it, and the
    edges are finally pruned with a Benjamini-Hochberg-Yekutieli type step.

    Notes
    -----
    The search runs in five phases:

    1. Skeleton discovery. Starting from the complete undirected graph, edges
       are removed with conditioning sets of increasing size. For adjacent
       pairs all p-values of rejected independencies are collected and their
       maximum gives the adjacency confidence :math:`P_1`. Unshielded triples
       x o-o y o-o z are then rescued: the best separating set of x and z
       containing y is added to the separating set if it indicates
       independence.

    2. Collider orientation. Unshielded triples x o-o y o-o z with y not in
       the separating set of x and z are oriented x --> y <-- z. The
       orientation confidence :math:`P_2` of a directed edge is the sum of
       collider contributions. Bidirected edges arising from conflicting
       colliders, and every edge pointing into them, are reset to undirected
       and marked ambiguous.

    3. Orientation propagation with Meek rules R1 (away from colliders), R2
       (away from cycles) and R3 (double triangle). Each rule application
       is recorded; rules never reorient edges marked ambiguous in phase 2.

    4. Evidence aggregation. Remaining orientation conflicts become
       ambiguous undirected edges and ambiguity is propagated through the
       recorded justifications. The confidence :math:`P_3` of a directed edge
       combines :math:`P_1`, :math:`P_2` and the confidences of the edges
       justifying its orientation.

    5. FDR pruning. The :math:`m` scored edges are ranked by :math:`P_3`;
       edges beyond the last rank with :math:`P_3 < \alpha` are removed and
       the achieved FDR bound and the threshold :math:`\alpha^*` for the
       requested bound q are reported.

    Confidence values are 'upper bounds' in the sense of adding up error
    probabilities, so they can exceed 1.

    Parameters
    ----------
    cond_ind_test : conditional independence test object
        This can be ParCorr, Gsquared, OracleCI or any object with the
        attributes ``alpha`` and ``lock`` and the methods ``get_variables()``
        and ``run_test(X, Y, Z, alpha_or_thres)``. The significance level of
        the search is ``cond_ind_test.alpha``.
    verbosity : int, optional (default: 0)
        Verbose levels 0, 1, ...
    """

    def __init__(self, cond_ind_test,
                 verbosity=0):
        PCPbase.__init__(self,
                         cond_ind_test=cond_ind_test,
                         verbosity=verbosity)

    def _print_pcp_params(self, alpha, q, max_conds_dim, rescue_conds_dim,
                          collider_conds_dim, full_pipeline):
        print("\n##\n## Running PCP search\n##"
              "\n\nParameters:")
        print("independence test = %s" % self.cond_ind_test.measure
              + "\nalpha = %s" % alpha
              + "\nq = %s" % q
              + "\nmax_conds_dim = %s" % max_conds_dim
              + "\nrescue_conds_dim = %s" % rescue_conds_dim
              + "\ncollider_conds_dim = %s" % collider_conds_dim
              + "\nfull_pipeline = %s" % full_pipeline)

    def run_pcp(self,
                q=1.,
                max_conds_dim=None,
                rescue_conds_dim=3,
                collider_conds_dim=None,
                full_pipeline=True):
        """Runs the PCP search.

        Parameters
        ----------
        q : float, optional (default: 1.)
            Target false discovery rate bound in [0, 1] used to determine
            alpha_star.
        max_conds_dim : int or None, optional (default: None)
            Maximum size of conditioning sets in the skeleton phase. If None,
            conditioning sets grow until no node has enough neighbors.
        rescue_conds_dim : int, optional (default: 3)
            Maximum size of conditioning sets tested when rescuing separating
            sets of unshielded triples.
        collider_conds_dim : int or None, optional (default: None)
            Maximum size of conditioning sets tested for collider evidence.
            If None, all subsets of the neighborhoods are tested.
        full_pipeline : bool, optional (default: True)
            If False, stop after collider orientation and return the collider
            pattern without rule propagation, evidence aggregation and FDR
            pruning.

        Returns
        -------
        results : dict
            Dictionary with the keys

            * 'graph': final Graph
            * 'skeleton_graph', 'collider_graph': intermediate Graphs
            * 'sepsets': dict of separating sets for non-adjacent pairs
            * 'pval_sets': dict of collected p-values per ordered pair
            * 'p1', 'p2', 'p3': dicts of confidences per ordered pair
            * 'orientation_records': dict of the recorded rule applications
            * 'ambiguous_edges': list of (x, y, link) of ambiguous edges
            * 'removed_edges': list of (x, y, link) removed by FDR pruning
            * 'ranked_edges': list of (x, y, link, p3) ascending in p3
            * 'pvalues': dict of the confidences of the edges kept by FDR
              pruning
            * 'fdr', 'alpha_star': FDR bound and threshold (nan if not run)
            * 'm': number of edges entering the FDR step
            * 'elapsed': running time in seconds
        """
        self._check_q(q)
        alpha = self._get_alpha()
        if max_conds_dim is None:
            max_conds_dim = self.N
        if max_conds_dim < 0 or rescue_conds_dim < 0:
            raise ValueError("max_conds_dim and rescue_conds_dim must be "
                             "non-negative.")
        if collider_conds_dim is not None and collider_conds_dim < 1:
            raise ValueError("collider_conds_dim must be None or positive.")

        if self.verbosity > 0:
            self._print_pcp_params(alpha, q, max_conds_dim, rescue_conds_dim,
                                   collider_conds_dim, full_pipeline)

        start = time.time()

        skeleton_results = self._pcp_skeleton(
            alpha=alpha,
            max_conds_dim=max_conds_dim,
            rescue_conds_dim=rescue_conds_dim)

        collider_results = self._pcp_colliders(
            graph=skeleton_results['graph'],
            sepsets=skeleton_results['sepsets'],
            p1=skeleton_results['p1'],
            alpha=alpha,
            collider_conds_dim=collider_conds_dim)

        results = {'skeleton_graph': skeleton_results['graph'],
                   'collider_graph': collider_results['collider_graph'],
                   'sepsets': skeleton_results['sepsets'],
                   'pval_sets': skeleton_results['pval_sets'],
                   'p1': skeleton_results['p1'],
                   'p2': collider_results['p2'],
                   }

        if not full_pipeline:
            graph = collider_results['graph']
            results.update({
                'graph': graph,
                'p3': {},
                'orientation_records': {'R0': collider_results['r0']},
                'ambiguous_edges': self._get_ambiguous_edges(
                    graph, collider_results['ambiguous']),
                'removed_edges': [],
                'ranked_edges': [],
                'pvalues': {},
                'fdr': np.nan,
                'alpha_star': np.nan,
                'm': 0,
                })
            results['elapsed'] = time.time() - start
            if self.verbosity > 0:
                self.print_results(results)
            return results

        rules_results = self._pcp_rules(
            graph=collider_results['graph'],
            collider_graph=collider_results['collider_graph'],
            unshielded_triples=collider_results['unshielded_triples'],
            r0=collider_results['r0'],
            ambiguous=collider_results['ambiguous'])

        evidence_results = self._pcp_evidence(
            graph=rules_results['graph'],
            r0=collider_results['r0'],
            r1=rules_results['r1'],
            r2=rules_results['r2'],
            r3=rules_results['r3'],
            p1=skeleton_results['p1'],
            p2=collider_results['p2'],
            ambiguous=collider_results['ambiguous'])

        fdr_results = self._pcp_fdr(
            graph=evidence_results['graph'],
            p3=evidence_results['p3'],
            ambiguous=evidence_results['ambiguous'],
            alpha=alpha,
            q=q)

        results.update({
            'graph': fdr_results['graph'],
            'p3': evidence_results['p3'],
            'orientation_records': {'R0': collider_results['r0'],
                                    'R1': rules_results['r1'],
                                    'R2': rules_results['r2'],
                                    'R3': rules_results['r3']},
            'ambiguous_edges': fdr_results['ambiguous_edges'],
            'removed_edges': fdr_results['removed_edges'],
            'ranked_edges': fdr_results['ranked_edges'],
            'pvalues': fdr_results['pvalues'],
            'fdr': fdr_results['fdr'],
            'alpha_star': fdr_results['alpha_star'],
            'm': fdr_results['m'],
            })
        results['elapsed'] = time.time() - start

        if self.verbosity > 0:
            self.print_results(results)
        return results

    def _pcp_skeleton(self, alpha, max_conds_dim, rescue_conds_dim):
        """Skeleton discovery with p-value bookkeeping.

        Parameters
        ----------
        alpha : float
            Independence threshold.
        max_conds_dim : int
            Maximum size of conditioning sets.
        rescue_conds_dim : int
            Maximum size of conditioning sets for the separating set rescue.

        Returns
        -------
        skeleton_results : dict
            Dictionary with keys 'graph', 'sepsets', 'pval_sets' and 'p1'.
        """
        if self.verbosity > 0:
            print("\n--------------------------")
            print("Skeleton discovery phase")
            print("--------------------------")

        graph = Graph.complete(self.nodes)
        sepsets = {}
        pval_sets = defaultdict(set)

        l = -1
        while graph.max_degree() - 1 > l and l < max_conds_dim:
            l += 1
            if self.verbosity > 1:
                print("\nTesting condition sets of dimension %d:" % l)

            # Removals are applied after the round so that all pairs of one
            # round see the same adjacencies
            to_remove = []
            for x in self.nodes:
                adj_x = graph.adjacent_nodes(x)
                for y in adj_x:
                    others = [w for w in adj_x if w is not y]
                    if len(others) < l:
                        continue
                    for S in itertools.combinations(others, l):
                        independent, pval = self._run_ci_test(x, y, S, alpha)
                        if np.isnan(pval):
                            continue
                        if independent:
                            if self.verbosity > 1:
                                print("        Non-significance detected.")
                            to_remove.append((x, y))
                            sepsets.setdefault((x, y), set()).update(S)
                            sepsets.setdefault((y, x), set()).update(S)
                            pval_sets[(x, y)].clear()
                            pval_sets[(y, x)].clear()
                            break
                        pval_sets[(x, y)].add(pval)
                        pval_sets[(y, x)].add(pval)

            for (x, y) in to_remove:
                graph.remove_edge(x, y)
                pval_sets.pop((x, y), None)
                pval_sets.pop((y, x), None)

            if self.verbosity > 1:
                print("\nRemoved %d links at dimension %d" % (
                    len(set(frozenset(pair) for pair in to_remove)), l))

        p1 = dict((pair, max(pvals)) for pair, pvals in pval_sets.items()
                  if len(pvals) > 0)

        # Rescue separating sets of unshielded triples
        triples = self._find_unshielded_triples(graph)
        if self.verbosity > 1:
            print("\nRescuing separating sets of %d unshielded triples"
                  % len(triples))
        for (x, y, z) in triples:
            pval_max = -np.inf
            sepset_max = None
            for S in self._get_conditions_containing(graph, x, z, y,
                                                     rescue_conds_dim):
                _, pval = self._run_ci_test(x, z, S, alpha)
                if np.isnan(pval):
                    continue
                if pval > pval_max:
                    pval_max = pval
                    sepset_max = S
            if sepset_max is None:
                continue
            pval_sets[(x, z)].add(pval_max)
            pval_sets[(z, x)].add(pval_max)
            if pval_max > alpha:
                if self.verbosity > 1:
                    print("    Rescued {%s} for (%s, %s)" % (
                        ", ".join(str(s) for s in sepset_max), x, z))
                sepsets.setdefault((x, z), set()).update(sepset_max)
                sepsets.setdefault((z, x), set()).update(sepset_max)

        if self.verbosity > 0:
            print("\nSkeleton has %d edges" % len(graph.get_edges()))

        return {'graph': graph,
                'sepsets': sepsets,
                'pval_sets': dict(pval_sets),
                'p1': p1,
                }

    def _pcp_colliders(self, graph, sepsets, p1, alpha,
                       collider_conds_dim=None):
        """Collider orientation with orientation confidences.

        Parameters
        ----------
        graph : Graph
            Skeleton from phase 1.
        sepsets : dict
            Separating sets of non-adjacent pairs.
        p1 : dict
            Adjacency confidences.
        alpha : float
            Independence threshold.
        collider_conds_dim : int or None
            Maximum size of conditioning sets for collider evidence.

        Returns
        -------
        collider_results : dict
            Dictionary with keys 'graph' (conflicts resolved), 'collider_graph'
            (with conflicts), 'r0', 'tp', 'p2', 'ambiguous' and
            'unshielded_triples'.
        """
        if self.verbosity > 0:
            print("\n----------------------------")
            print("Collider orientation phase")
            print("----------------------------")

        collider_graph = graph.copy()
        triples = self._find_unshielded_triples(graph)

        r0 = set()
        tp = defaultdict(list)
        for ir, (x, y, z) in enumerate(triples):
            # Each triple appears as (x, y, z) and (z, y, x)
            if self._order(x) > self._order(z):
                continue
            if (x, z) not in sepsets:
                raise RuntimeError("No separating set for non-adjacent "
                                   "pair (%s, %s)." % (x, z))
            if y in sepsets[(x, z)]:
                continue

            if self.verbosity > 1:
                self._print_triple_info((x, y, z), ir, len(triples))
                print("        %s not in sepset, orient as %s --> %s <-- %s"
                      % (y, x, y, z))

            collider_graph.set_endpoint(x, y, '>')
            collider_graph.set_endpoint(z, y, '>')
            r0.add((x, y, z))
            r0.add((z, y, x))

            # Evidence for dependence of x and z given sets containing y
            pvals = []
            for S in self._get_conditions_containing(graph, x, z, y,
                                                     collider_conds_dim):
                _, pval = self._run_ci_test(x, z, S, alpha)
                if not np.isnan(pval):
                    pvals.append(pval)
            t_max = max(pvals) if pvals else None

            for tail, other in [(z, x), (x, z)]:
                evidence = [v for v in (p1.get((other, y)), t_max)
                            if v is not None]
                if evidence:
                    tp[(tail, y)].append(max(evidence))

        p2 = {}
        for (a, b, link) in collider_graph.get_edges():
            if link == '-->':
                pair = (a, b)
            elif link == '<--':
                pair = (b, a)
            else:
                continue
            if pair in tp:
                p2[pair] = sum(tp[pair])

        # Undo conflicting colliders and everything pointing into them
        ambiguous = set()
        new_graph = collider_graph.copy()
        for (x, y, link) in collider_graph.get_edges():
            if link != '<->':
                continue
            if self.verbosity > 1:
                print("    Conflict %s <-> %s, unorient" % (x, y))
            for node in (x, y):
                for w in collider_graph.nodes_into(node):
                    new_graph.add_undirected_edge(w, node)
                    ambiguous.add((w, node))
                    ambiguous.add((node, w))

        if self.verbosity > 0:
            print("\nOriented %d colliders, %d ambiguous edges" % (
                len(r0) // 2, len(ambiguous) // 2))

        return {'graph': new_graph,
                'collider_graph': collider_graph,
                'r0': r0,
                'tp': dict(tp),
                'p2': p2,
                'ambiguous': ambiguous,
                'unshielded_triples': triples,
                }

    def _pcp_rules(self, graph, collider_graph, unshielded_triples, r0,
                   ambiguous):
        """Orientation propagation with rules R1, R2 and R3.

        All matches of one rule are found on the current graph before any of
        them is applied, so that opposite orientations show up as conflicts
        x <-> y instead of depending on the iteration order.

        Parameters
        ----------
        graph : Graph
            Collider pattern with conflicts resolved.
        collider_graph : Graph
            Collider pattern before conflict resolution.
        unshielded_triples : list of tuples
            Unshielded triples of the skeleton.
        r0 : set
            Collider records.
        ambiguous : set
            Pairs marked ambiguous in the collider phase.

        Returns
        -------
        rules_results : dict
            Dictionary with keys 'graph', 'r1', 'r2' and 'r3'.
        """
        if self.verbosity > 0:
            print("\n----------------------------")
            print("Rule orientation phase")
            print("----------------------------")

        graph = graph.copy()
        triangles = self._find_triangles(collider_graph)
        kites = self._find_kites(collider_graph)

        r1 = set()
        r2 = set()
        r3 = set()

        def blocked(y, z):
            return (y, z) in ambiguous and collider_graph.is_bidirected(y, z)

        def rule1():
            """Find (unambiguous) triples x --> y o-o z, x -/- z, that are no
            colliders and orient y --> z."""
            matches = [(x, y, z) for (x, y, z) in unshielded_triples
                       if graph.is_directed(x, y)
                       and graph.is_undirected(y, z)
                       and not blocked(y, z)
                       and (x, y, z) not in r0
                       and (x, y, z) not in r1]
            for (x, y, z) in matches:
                if self.verbosity > 1:
                    print("    R1: %s --> %s o-o %s, orient as %s --> %s"
                          % (x, y, z, y, z))
                graph.set_endpoint(y, z, '>')
                r1.add((x, y, z))
            return len(matches) > 0

        def rule2():
            """Find triangles y --> x --> z, y o-o z and orient y --> z.

            A triangle whose y --> z is already oriented is recorded as a
            further justification without changing the graph.
            """
            matches = [(y, x, z) for (y, x, z) in triangles
                       if graph.is_directed(y, x)
                       and graph.is_directed(x, z)
                       and (graph.is_undirected(y, z)
                            or graph.is_directed(y, z))
                       and not blocked(y, z)
                       and (y, x, z) not in r2]
            for (y, x, z) in matches:
                if self.verbosity > 1:
                    print("    R2: %s --> %s --> %s, orient as %s --> %s"
                          % (y, x, z, y, z))
                graph.set_endpoint(y, z, '>')
                r2.add((y, x, z))
            return len(matches) > 0

        def rule3():
            """Find y o-o x --> z and y o-o w --> z with x -/- w and y o-o z
            and orient y --> z."""
            matches = [(y, x, w, z) for (y, x, w, z) in kites
                       if graph.is_undirected(y, x)
                       and graph.is_undirected(y, w)
                       and graph.is_directed(x, z)
                       and graph.is_directed(w, z)
                       and graph.is_undirected(y, z)
                       and not blocked(y, z)
                       and (y, x, w, z) not in r3]
            for (y, x, w, z) in matches:
                if self.verbosity > 1:
                    print("    R3: %s o-o %s --> %s, %s o-o %s --> %s, orient "
                          "as %s --> %s" % (y, x, z, y, w, z, y, z))
                graph.set_endpoint(y, z, '>')
                r3.add((y, x, w, z))
                r3.add((y, w, x, z))
            return len(matches) > 0

        applied = True
        while applied:
            any1 = rule1()
            any2 = rule2()
            any3 = rule3()
            applied = any1 or any2 or any3

        # R2 explains the orientation better than R3 where both apply
        for (y, x, w, z) in list(r3):
            if (y, x, z) in r2 or (y, w, z) in r2:
                r3.discard((y, x, w, z))

        if self.verbosity > 0:
            print("\nApplied R1 %d, R2 %d, R3 %d times" % (
                len(r1), len(r2), len(r3)))

        return {'graph': graph,
                'r1': r1,
                'r2': r2,
                'r3': r3,
                }

    def _get_justifications(self, r0, r1, r2, r3):
        """Returns evidence and justification maps of orientation records.

        Returns
        -------
        evidence : dict of sets
            Directed pair -> pairs involved in its orientation.
        justifications : dict of lists
            Directed pair -> list of tuples of pairs that each justify the
            orientation by a rule application (R1, R2 or R3).
        """
        evidence = defaultdict(set)
        justifications = defaultdict(list)

        # A collider orientation x --> y rests on its sibling z --> y
        for (x, y, z) in self._sorted_records(r0):
            evidence[(x, y)].add((z, y))

        for (x, y, z) in self._sorted_records(r1):
            evidence[(y, z)].add((x, y))
            justifications[(y, z)].append(((x, y),))

        for (y, x, z) in self._sorted_records(r2):
            evidence[(y, z)].update([(y, x), (x, z)])
            justifications[(y, z)].append(((y, x), (x, z)))

        # Both orderings of a kite are recorded, count each once
        kites_seen = set()
        for (y, x, w, z) in self._sorted_records(r3):
            required = ((y, x), (y, w), (x, z), (w, z))
            evidence[(y, z)].update(required)
            key = (y, frozenset([x, w]), z)
            if key not in kites_seen:
                kites_seen.add(key)
                justifications[(y, z)].append(required)

        return evidence, justifications

    def _pcp_evidence(self, graph, r0, r1, r2, r3, p1, p2, ambiguous):
        """Ambiguity consolidation and aggregate edge confidences.

        Parameters
        ----------
        graph : Graph
            Pattern after rule propagation.
        r0, r1, r2, r3 : sets
            Orientation records.
        p1, p2 : dicts
            Adjacency and collider confidences.
        ambiguous : set
            Pairs marked ambiguous in the collider phase.

        Returns
        -------
        evidence_results : dict
            Dictionary with keys 'graph', 'p3', 'ambiguous' and 'evidence'.
        """
        if self.verbosity > 0:
            print("\n----------------------------")
            print("Evidence aggregation phase")
            print("----------------------------")

        ambiguous = set(ambiguous)
        evidence, justifications = self._get_justifications(r0, r1, r2, r3)

        dependents = defaultdict(set)
        for pair, justifying in evidence.items():
            for other in justifying:
                dependents[other].add(pair)

        final_graph = graph.copy()
        queue = deque()
        for (y, z, link) in graph.get_edges():
            if link == '<->':
                if self.verbosity > 1:
                    print("    Conflict %s <-> %s, unorient" % (y, z))
                final_graph.add_undirected_edge(y, z)
                ambiguous.update([(y, z), (z, y)])
                queue.append((y, z))

        # Ambiguity spreads to every edge sharing an orientation justification
        expanded = set()
        while queue:
            (y, z) = queue.popleft()
            if (y, z) in expanded:
                continue
            expanded.update([(y, z), (z, y)])
            related = (evidence.get((y, z), set()) | evidence.get((z, y), set())
                       | dependents.get((y, z), set())
                       | dependents.get((z, y), set()))
            for (a, b) in self._sorted_records(related):
                if (a, b) in expanded or not final_graph.is_adjacent(a, b):
                    continue
                if self.verbosity > 1 and (a, b) not in ambiguous:
                    print("    %s %s %s ambiguous via (%s, %s)" % (
                        a, final_graph.get_link(a, b), b, y, z))
                final_graph.add_undirected_edge(a, b)
                ambiguous.update([(a, b), (b, a)])
                queue.append((a, b))

        directed = []
        undirected = []
        for (a, b, link) in final_graph.get_edges():
            if link == '-->':
                directed.append((a, b))
            elif link == '<--':
                directed.append((b, a))
            elif link == 'o-o':
                undirected.append((a, b))
            else:
                raise RuntimeError("Unexpected link %s %s %s after conflict "
                                   "resolution." % (a, link, b))

        p2_full = dict(p2)
        for pair in directed:
            p2_full.setdefault(pair, 0.)

        confidence = {}
        p3 = {}
        for pair in undirected:
            if pair not in ambiguous and pair in p1:
                confidence[pair] = p1[pair]
                p3[pair] = p1[pair]

        for pair in directed:
            p3[pair] = self._get_aggregate_confidence(
                pair, p1, p2_full, justifications, confidence)

        for (y, z) in undirected:
            if (y, z) in ambiguous:
                p3[(y, z)] = max(
                    self._get_aggregate_confidence((y, z), p1, p2_full,
                                                   justifications, confidence),
                    self._get_aggregate_confidence((z, y), p1, p2_full,
                                                   justifications, confidence))

        if self.verbosity > 0:
            print("\n%d directed, %d undirected edges, %d scored" % (
                len(directed), len(undirected), len(p3)))

        return {'graph': final_graph,
                'p3': p3,
                'ambiguous': ambiguous,
                'evidence': dict(evidence),
                }

    def _get_aggregate_confidence(self, pair, p1, p2, justifications, memo):
        """Returns the aggregate confidence of the orientation of pair.

        The value is the maximum of the adjacency confidence, the collider
        confidence and the summed confidences of all rule applications that
        oriented the pair, where each rule application contributes the
        largest confidence among the edges it required. Values are memoized
        in memo; a required pair already on the current evaluation path
        contributes 0, which breaks cyclic justifications.

        Parameters
        ----------
        pair : tuple of Node
            Directed pair (tail, head).
        p1, p2 : dicts
            Adjacency and collider confidences.
        justifications : dict of lists
            Rule justifications per pair.
        memo : dict
            Memoized confidences, updated in place.

        Returns
        -------
        value : float
        """
        trail = set()
        stack = [(pair, False)]
        while stack:
            current, expanded = stack.pop()
            if current in memo:
                continue
            if expanded:
                combined = 0.
                for required in justifications.get(current, []):
                    combined += max([memo.get(other, 0.) for other in required])
                memo[current] = max(p1.get(current, 0.), p2.get(current, 0.),
                                    combined)
                trail.discard(current)
                continue
            if current in trail:
                continue
            trail.add(current)
            stack.append((current, True))
            for required in justifications.get(current, []):
                for other in required:
                    if other not in memo and other not in trail:
                        stack.append((other, False))

        return memo[pair]

    def _pcp_fdr(self, graph, p3, ambiguous, alpha, q=1.):
        """Ranks scored edges and prunes them with the FDR cutoff.

        Calling this again on the returned graph with the confidences of the
        remaining edges removes nothing further.

        Parameters
        ----------
        graph : Graph
            Pattern after evidence aggregation.
        p3 : dict
            Confidences of scored edges.
        ambiguous : set
            Ambiguous pairs.
        alpha : float
            Independence threshold.
        q : float, optional (default: 1.)
            Target bound.

        Returns
        -------
        fdr_results : dict
            Dictionary with keys 'graph', 'fdr', 'alpha_star', 'm',
            'removed_edges', 'ambiguous_edges', 'ranked_edges' and
            'pvalues'.
        """
        if self.verbosity > 0:
            print("\n----------------------------")
            print("FDR pruning phase")
            print("----------------------------")

        final_graph = graph.copy()
        scored = [(pair, p3[pair]) for pair in self._sorted_records(p3)
                  if final_graph.is_adjacent(*pair)]
        m = len(scored)

        if m == 0:
            if self.verbosity > 0:
                print("Not doing FDR; there are no edges with p-values.")
            return {'graph': final_graph,
                    'fdr': np.nan,
                    'alpha_star': np.nan,
                    'm': 0,
                    'removed_edges': [],
                    'ambiguous_edges': self._get_ambiguous_edges(final_graph,
                                                                 ambiguous),
                    'ranked_edges': [],
                    'pvalues': {},
                    }

        # Stable sort keeps the variable order among ties
        ranked = sorted(scored, key=lambda item: item[1])
        cutoff = self.get_fdr_cutoff([pval for _, pval in ranked], alpha, q)
        R = cutoff['R']

        ranked_edges = [(x, y, final_graph.get_link(x, y), pval)
                        for (x, y), pval in ranked]

        removed_edges = []
        for (x, y, link, pval) in ranked_edges[R:]:
            if self.verbosity > 1:
                print("    Removing %s %s %s (P3 = %.5f)" % (x, link, y, pval))
            removed_edges.append((x, y, link))
            final_graph.remove_edge(x, y)

        if removed_edges and self.verbosity > 0:
            warnings.warn("FDR pruning removed %d of %d edges."
                          % (len(removed_edges), m))

        return {'graph': final_graph,
                'fdr': cutoff['fdr'],
                'alpha_star': cutoff['alpha_star'],
                'm': m,
                'removed_edges': removed_edges,
                'ambiguous_edges': self._get_ambiguous_edges(final_graph,
                                                             ambiguous),
                'ranked_edges': ranked_edges,
                'pvalues': dict(ranked[:R]),
                }

    def print_results(self, results):
        """Prints the report of a PCP run.

        Parameters
        ----------
        results : dict
            Output of run_pcp.
        """
        print("\n## Results of PCP search")

        print("\nEdges removed by FDR:\n")
        if len(results['removed_edges']) == 0:
            print("--NONE--")
        for (x, y, link) in results['removed_edges']:
            print("%s %s %s" % (x, link, y))

        print("\nAmbiguous edges:\n")
        if len(results['ambiguous_edges']) == 0:
            print("--NONE--")
        for (x, y, link) in results['ambiguous_edges']:
            print("%s %s %s" % (x, link, y))

        print("\nEdge confidences:\n")
        for (x, y, link, pval) in results['ranked_edges']:
            print("%s %s %s p = %.6f" % (x, link, y, pval))

        print("\nFDR = %s" % results['fdr'])
        print("alpha_star = %s" % results['alpha_star'])
        print("m = %d" % results['m'])
        print("\n%s" % results['graph'])
        print("\nElapsed time = %.3f s" % results['elapsed'])
