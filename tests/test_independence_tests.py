"""
Tests for the conditional independence tests.
"""
import numpy as np
from numpy.testing import assert_equal, assert_allclose
import pytest
from scipy import stats
from scipy.stats import chi2_contingency

from pcpsearch.graphs import Node, Graph
from pcpsearch.data_processing import DataFrame
from pcpsearch.independence_tests import CondIndTest, ParCorr, Gsquared, OracleCI

# Pylint settings
# pylint: disable=redefined-outer-name

# Define the verbosity at the global scope
VERBOSITY = 1

# INDEPENDENCE TEST DATA GENERATION ############################################
def gen_data_sample(seed, corr_val, T):
    # Set the random seed
    random_state = np.random.default_rng(seed)
    # Define a symmetric covariance matrix
    cov = np.array([[1., corr_val],
                    [corr_val, 1.]])
    # Generate some random data using the above covariance relation
    data = random_state.multivariate_normal(mean=np.zeros(2), cov=cov, size=T)
    return DataFrame(data, var_names=['X', 'Y'])

def gen_chain_sample(seed, coeff, T):
    # Linear Gaussian chain X --> Z --> Y
    random_state = np.random.default_rng(seed)
    data = random_state.standard_normal((T, 3))
    data[:, 2] += coeff * data[:, 0]
    data[:, 1] += coeff * data[:, 2]
    return DataFrame(data, var_names=['X', 'Y', 'Z'])

# PARCORR TESTING ##############################################################
@pytest.fixture(params=[
    # seed, corr_val, T
    (42, 0.2, 1000),
    (1, 0.1, 500)])
def a_parcorr_sample(request):
    seed, corr_val, T = request.param
    dataframe = gen_data_sample(seed, corr_val, T)
    parcorr = ParCorr(verbosity=VERBOSITY)
    parcorr.set_dataframe(dataframe)
    return parcorr, dataframe

def test_parcorr_unconditional(a_parcorr_sample):
    """
    Without conditions the partial correlation test is the Pearson test.
    """
    parcorr, dataframe = a_parcorr_sample
    x, y = dataframe.nodes
    val, pval, dependent = parcorr.run_test(X=[x], Y=[y])
    expected_val, expected_pval = stats.pearsonr(dataframe.values[:, 0],
                                                 dataframe.values[:, 1])
    assert_allclose(val, expected_val, rtol=1e-8)
    assert_allclose(pval, expected_pval, rtol=1e-5)
    assert_equal(dependent, pval <= parcorr.alpha)

def test_parcorr_conditional():
    dataframe = gen_chain_sample(seed=7, coeff=0.8, T=1000)
    x, y, z = dataframe.nodes
    parcorr = ParCorr(alpha=0.01, verbosity=0)
    parcorr.set_dataframe(dataframe)
    # Regress out Z by hand
    data = dataframe.values
    design = np.column_stack([np.ones(len(data)), data[:, 2]])
    resid_x = data[:, 0] - design.dot(np.linalg.lstsq(design, data[:, 0],
                                                      rcond=None)[0])
    resid_y = data[:, 1] - design.dot(np.linalg.lstsq(design, data[:, 1],
                                                      rcond=None)[0])
    val, _, _ = parcorr.run_test(X=[x], Y=[y], Z=[z])
    assert_allclose(val, np.corrcoef(resid_x, resid_y)[0, 1], atol=1e-8)
    # The marginal dependence is strong
    _, pval, dependent = parcorr.run_test(X=[x], Y=[y])
    assert pval < 1e-10
    assert dependent

def test_parcorr_undefined_pvalue():
    """
    With no degrees of freedom left the p-value is undefined.
    """
    dataframe = DataFrame(np.array([[0., 1.], [1., 3.]]))
    x, y = dataframe.nodes
    parcorr = ParCorr()
    parcorr.set_dataframe(dataframe)
    _, pval, dependent = parcorr.run_test(X=[x], Y=[y])
    assert np.isnan(pval)
    assert dependent is None

def test_parcorr_analytic_significance():
    parcorr = ParCorr()
    xyz = np.array([0, 1])
    assert_equal(parcorr.get_analytic_significance(1., T=100, dim=2, xyz=xyz),
                 0.)
    assert np.isnan(parcorr.get_analytic_significance(0.5, T=2, dim=2,
                                                      xyz=xyz))
    assert_allclose(parcorr.get_analytic_significance(0., T=100, dim=2,
                                                      xyz=xyz), 1.)

def test_cached_results(a_parcorr_sample):
    parcorr, dataframe = a_parcorr_sample
    x, y = dataframe.nodes
    first = parcorr.run_test(X=[x], Y=[y])
    second = parcorr.run_test(X=[y], Y=[x])
    assert_equal(len(parcorr.cached_ci_results), 1)
    assert_equal(first, second)

def test_ci_test_configuration():
    with pytest.raises(ValueError):
        ParCorr(alpha=0.)
    with pytest.raises(ValueError):
        ParCorr(alpha=1.)
    with pytest.raises(TypeError):
        CondIndTest()
    parcorr = ParCorr()
    with pytest.raises(ValueError):
        parcorr.get_variables()
    with pytest.raises(ValueError):
        parcorr.run_test(X=[Node('X')], Y=[Node('Y')])

def test_nan_data_raises():
    dataframe = DataFrame(np.array([[0., 1.], [np.nan, 3.], [2., 2.]]))
    x, y = dataframe.nodes
    parcorr = ParCorr()
    parcorr.set_dataframe(dataframe)
    with pytest.raises(ValueError):
        parcorr.run_test(X=[x], Y=[y])

# GSQUARED TESTING #############################################################
@pytest.fixture(params=[
    # seed, T, coupling
    (42, 2000, 0.),
    (3, 2000, 0.5)])
def a_discrete_sample(request):
    seed, T, coupling = request.param
    random_state = np.random.default_rng(seed)
    x = random_state.integers(0, 2, size=T)
    flip = random_state.random(T) < coupling
    y = np.where(flip, x, random_state.integers(0, 3, size=T))
    return DataFrame(np.column_stack([x, y]), var_names=['X', 'Y'])

def test_gsquared_unconditional(a_discrete_sample):
    """
    Without conditions the G-test equals the log-likelihood ratio test of the
    contingency table.
    """
    dataframe = a_discrete_sample
    x, y = dataframe.nodes
    gsquared = Gsquared(verbosity=VERBOSITY)
    gsquared.set_dataframe(dataframe)
    val, pval, _ = gsquared.run_test(X=[x], Y=[y])

    observed = np.zeros((2, 3))
    for xi, yi in dataframe.values:
        observed[int(xi), int(yi)] += 1
    expected_val, expected_pval, _, _ = chi2_contingency(
        observed, correction=False, lambda_="log-likelihood")
    assert_allclose(val, expected_val, rtol=1e-8)
    assert_allclose(pval, expected_pval, rtol=1e-6)

def test_gsquared_conditional_dependence():
    random_state = np.random.default_rng(5)
    T = 3000
    z = random_state.integers(0, 2, size=T)
    x = np.where(random_state.random(T) < 0.9, z, 1 - z)
    y = np.where(random_state.random(T) < 0.9, x, 1 - x)
    dataframe = DataFrame(np.column_stack([x, y, z]), var_names=['X', 'Y', 'Z'])
    xn, yn, zn = dataframe.nodes
    gsquared = Gsquared(n_symbs=2)
    gsquared.set_dataframe(dataframe)
    _, pval, dependent = gsquared.run_test(X=[xn], Y=[yn], Z=[zn])
    assert pval < 1e-10
    assert dependent

# ORACLE TESTING ###############################################################
@pytest.fixture()
def a_collider_dag():
    # A --> C <-- B, C --> D
    nodes = [Node(name) for name in 'ABCD']
    a, b, c, d = nodes
    graph = Graph(nodes)
    graph.add_directed_edge(a, c)
    graph.add_directed_edge(b, c)
    graph.add_directed_edge(c, d)
    return graph, nodes

def test_oracle_dseparation(a_collider_dag):
    graph, (a, b, c, d) = a_collider_dag
    oracle = OracleCI(graph)
    assert_equal(oracle.run_test(X=[a], Y=[b], Z=[]), (0., 1., False))
    assert_equal(oracle.run_test(X=[a], Y=[b], Z=[c]), (1., 0., True))
    # Conditioning on a descendant of the collider opens the path
    assert_equal(oracle.run_test(X=[a], Y=[b], Z=[d]), (1., 0., True))
    assert_equal(oracle.run_test(X=[a], Y=[d], Z=[c]), (0., 1., False))
    assert_equal(oracle.run_test(X=[a], Y=[d], Z=[]), (1., 0., True))
    assert_equal(oracle.run_test(X=[a], Y=[d], Z=[b, c]), (0., 1., False))
    assert oracle.get_variables() == [a, b, c, d]

def test_oracle_latent_confounder():
    # A --> B <-- L --> C <-- D with L unobserved
    nodes = [Node(name) for name in ['A', 'B', 'C', 'D', 'L']]
    a, b, c, d, l = nodes
    graph = Graph(nodes)
    graph.add_directed_edge(a, b)
    graph.add_directed_edge(l, b)
    graph.add_directed_edge(l, c)
    graph.add_directed_edge(d, c)
    oracle = OracleCI(graph, observed_vars=[a, b, c, d])
    assert oracle.get_variables() == [a, b, c, d]
    _, pval, _ = oracle.run_test(X=[b], Y=[c], Z=[a, d])
    assert_equal(pval, 0.)
    _, pval, _ = oracle.run_test(X=[a], Y=[c], Z=[])
    assert_equal(pval, 1.)
    _, pval, _ = oracle.run_test(X=[a], Y=[c], Z=[b])
    assert_equal(pval, 0.)

def test_oracle_requires_dag(a_collider_dag):
    graph, (a, b, c, d) = a_collider_dag
    undirected = graph.copy()
    undirected.add_undirected_edge(a, b)
    with pytest.raises(ValueError):
        OracleCI(undirected)
    cyclic = graph.copy()
    cyclic.add_directed_edge(d, a)
    with pytest.raises(ValueError):
        OracleCI(cyclic)
