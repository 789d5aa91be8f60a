"""pcpsearch causal structure learning with false discovery rate control."""

# License: GNU General Public License v3.0

import abc
import threading
import warnings
import numpy as np
import six


@six.add_metaclass(abc.ABCMeta)
class CondIndTest():
    """Base class of conditional independence tests.

    Provides the common interface used by the PCP search: the significance
    level alpha, caching of test results and a lock serialising all tests
    run on the same instance. Other test classes can inherit from this
    class.

    Parameters
    ----------
    alpha : float, optional (default: 0.01)
        Significance level. A test with p-value > alpha is judged
        independent. The PCP search reads its threshold from here.

    verbosity : int, optional (default: 0)
        Level of verbosity.
    """
    @abc.abstractmethod
    def get_dependence_measure(self, array, xyz):
        """
        Abstract function that all concrete classes must instantiate.
        """
        pass

    @abc.abstractmethod
    def get_analytic_significance(self, value, T, dim, xyz):
        """
        Abstract function that all concrete classes must instantiate.
        Must return numpy.nan if the p-value is undefined.
        """
        pass

    @abc.abstractproperty
    def measure(self):
        """
        Abstract property to store the type of independence test.
        """
        pass

    def __init__(self,
                 alpha=0.01,
                 verbosity=0):
        if not 0. < alpha < 1.:
            raise ValueError("alpha must be in (0, 1), got %s" % alpha)
        self.alpha = alpha
        self.verbosity = verbosity
        # Set the dataframe to None for now, will be reset by set_dataframe
        self.dataframe = None
        self.cached_ci_results = {}
        self.lock = threading.RLock()

        if self.verbosity > 0:
            self.print_info()

    def print_info(self):
        """
        Print information about the conditional independence test parameters
        """
        info_str = "\n# Initialize conditional independence test\n\nParameters:"
        info_str += "\nindependence test = %s" % self.measure
        info_str += "\nalpha = %s" % self.alpha
        print(info_str)

    def set_dataframe(self, dataframe):
        """Initialize the dataframe.

        Parameters
        ----------
        dataframe : data object
            pcpsearch DataFrame object with attributes values, nodes and
            construct_array.
        """
        self.dataframe = dataframe
        self.cached_ci_results = {}

    def get_variables(self):
        """Returns the nodes this test can be run on."""
        if self.dataframe is None:
            raise ValueError("Call set_dataframe first.")
        return list(self.dataframe.nodes)

    def _keyfy(self, X, Y, Z):
        """Order-independent key of the test X _|_ Y | Z."""
        return (frozenset([frozenset(X), frozenset(Y)]), frozenset(Z))

    def run_test(self, X, Y, Z=None, alpha_or_thres=None):
        """Perform conditional independence test.

        Calls the dependence measure and significance test functions. The
        child classes must specify get_dependence_measure and
        get_analytic_significance. Results are cached and concurrent calls
        on the same instance are serialised.

        Parameters
        ----------
        X, Y, Z : list of Node
            Variables of the test X _|_ Y | Z.
        alpha_or_thres : float, optional (default: None)
            Significance level. If None, self.alpha is used.

        Returns
        -------
        val, pval, dependent : Tuple of floats and bool
            The test statistic value, the p-value and the test decision
            dependent = (pval <= alpha). For an undefined p-value (numpy.nan)
            dependent is None.
        """
        if Z is None:
            Z = []
        if alpha_or_thres is None:
            alpha_or_thres = self.alpha

        with self.lock:
            key = self._keyfy(X, Y, Z)
            if key in self.cached_ci_results:
                cached = True
                val, pval = self.cached_ci_results[key]
            else:
                cached = False
                if self.dataframe is None:
                    raise ValueError("Call set_dataframe first when using CI "
                                     "test outside causal discovery classes.")
                array, xyz = self.dataframe.construct_array(
                    X=X, Y=Y, Z=Z, verbosity=self.verbosity)
                dim, T = array.shape
                if np.any(np.isnan(array)):
                    raise ValueError("nans in the array!")
                if np.any(array.std(axis=1) == 0.) and self.verbosity > 0:
                    warnings.warn("Possibly constant array!")
                val = self.get_dependence_measure(array, xyz)
                pval = self.get_analytic_significance(value=val, T=T, dim=dim,
                                                      xyz=xyz)
                self.cached_ci_results[key] = (val, pval)

        if np.isnan(pval):
            dependent = None
        else:
            dependent = bool(pval <= alpha_or_thres)

        if self.verbosity > 1:
            self._print_cond_ind_results(val=val, pval=pval, cached=cached,
                                         dependent=dependent)
        return val, pval, dependent

    def _print_cond_ind_results(self, val, pval=None, cached=None, dependent=None):
        """Print results from conditional independence test.

        Parameters
        ----------
        val : float
            Test stastistic value.

        pval : float, optional (default: None)
            p-value

        dependent : bool
            Test decision.
        """
        printstr = "        val = % .3f" % (val)
        if pval is not None:
            printstr += " | pval = %.5f" % (pval)
        if dependent is not None:
            printstr += " | dependent = %s" % (dependent)
        if cached is not None:
            printstr += " %s" % ({0:"", 1:"[cached]"}[cached])

        print(printstr)
