"""pcpsearch causal structure learning with false discovery rate control."""

# License: GNU General Public License v3.0

import numpy as np

from .graphs import Node


class DataFrame():
    """Data object containing a single array of observations and the
    variable definitions.

    Parameters
    ----------
    data : array-like
        Numpy array of shape (observations T, variables N).
    var_names : list of strings, optional (default: range(N))
        Names of variables, must match the number of variables. If None is
        passed, variables are enumerated as [0, 1, ...]
    missing_flag : number, optional (default: None)
        Flag for missing values in dataframe. Dismisses all samples where
        missing values occur in any of the variables of a test.

    Attributes
    ----------
    values : array-like
        The data array of shape (T, N).
    nodes : list of Node
        One node per column. These are the variables handed to the causal
        discovery algorithms.
    T : int
        Sample length.
    N : int
        Number of variables.
    """

    def __init__(self, data, var_names=None, missing_flag=None):
        data = np.asarray(data)
        if data.ndim != 2:
            raise ValueError("data must be a 2D array of shape (T, N), "
                             "got shape %s." % str(data.shape))
        self.values = data
        self.T, self.N = data.shape
        self.missing_flag = missing_flag

        if var_names is None:
            var_names = [str(i) for i in range(self.N)]
        var_names = [str(name) for name in var_names]
        if len(var_names) != self.N:
            raise ValueError("len(var_names) = %d but data has %d "
                             "variables." % (len(var_names), self.N))
        if len(set(var_names)) != len(var_names):
            raise ValueError("var_names must be unique.")
        self.var_names = var_names

        self.nodes = [Node(name) for name in self.var_names]
        self._index = dict((node, i) for i, node in enumerate(self.nodes))

    def node_index(self, node):
        """Returns the column of node."""
        try:
            return self._index[node]
        except KeyError:
            raise ValueError("Node %s not in dataframe." % node)

    def get_node(self, name):
        """Returns the node with the given variable name."""
        return self.nodes[self.var_names.index(str(name))]

    def construct_array(self, X, Y, Z, verbosity=0):
        """Constructs array from variables X, Y, Z.

        Parameters
        ----------
        X, Y, Z : list of Node
            Variables of the test X _|_ Y | Z. X, Y and Z must not overlap.
        verbosity : int, optional (default: 0)
            Level of verbosity.

        Returns
        -------
        array, xyz : Tuple of data array of shape (dim, T) and xyz identifier
            array of shape (dim,) identifying which row in array corresponds
            to X, Y, and Z. Samples with missing values are removed.
        """
        X, Y, Z = list(X), list(Y), list(Z)
        if len(X) == 0 or len(Y) == 0:
            raise ValueError("X and Y must be non-empty.")
        XYZ = X + Y + Z
        if len(set(XYZ)) != len(XYZ):
            raise ValueError("X, Y, Z must not overlap or contain "
                             "duplicates: %s" % [str(n) for n in XYZ])

        indices = [self.node_index(node) for node in XYZ]
        array = self.values[:, indices].astype('float64').T
        xyz = np.array([0 for _ in X] + [1 for _ in Y] + [2 for _ in Z])

        if self.missing_flag is not None:
            keep = np.all(self.values[:, indices] != self.missing_flag, axis=1)
            array = array[:, keep]
            if verbosity > 0 and not np.all(keep):
                print("        removed %d samples with missing values"
                      % (~keep).sum())

        return array, xyz
