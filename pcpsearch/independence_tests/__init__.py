from .independence_tests_base import CondIndTest
from .parcorr import ParCorr
from .gsquared import Gsquared
from .oracle_conditional_independence import OracleCI
