"""
Install pcpsearch
"""
from setuptools import setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Define the minimal classes needed to install and run pcpsearch
INSTALL_REQUIRES = ["numpy>=1.18", "scipy>=1.10.0", "six"]
# Define all the possible extras needed
EXTRAS_REQUIRE = {}

# Define the packages needed for testing
TESTS_REQUIRE = ["pytest"]
EXTRAS_REQUIRE["test"] = TESTS_REQUIRE
# Define the extras needed for development
EXTRAS_REQUIRE["dev"] = TESTS_REQUIRE

# Run the setup
setup(
    name="pcpsearch",
    version="0.1.0",
    packages=["pcpsearch", "pcpsearch.independence_tests"],
    license="GNU General Public License v3.0",
    description="PCP causal discovery with false discovery rate control",
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords="causal inference, causal discovery, false discovery rate",
    install_requires=INSTALL_REQUIRES,
    extras_require=EXTRAS_REQUIRE,
    test_suite="tests",
    tests_require=TESTS_REQUIRE,
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Topic :: Scientific/Engineering :: Mathematics",
        "License "
        ":: OSI Approved "
        ":: GNU General Public License v3 or later (GPLv3+)",
        "Programming Language :: Python",
    ],
)
