import re
import sys

import setuptools

NAME = "tmcmc"

# Read the version without importing the package, which needs JAX.
with open("tmcmc/_version.py", encoding="utf-8") as f:
    VERSION = re.search(r"^__version__ = \"([^\"]+)\"", f.read(), re.M).group(1)

# READ README.md for long description on PyPi.
try:
    long_description = open("README.md", encoding="utf-8").read()
except Exception as e:
    sys.stderr.write(f"Failed to read README.md:\n  {e}\n")
    sys.stderr.flush()
    long_description = ""


setuptools.setup(
    name=NAME,
    author="The Blackjax developers",
    description="Transitional Markov Chain Monte Carlo in JAX",
    long_description=long_description,
    version=VERSION,
    packages=setuptools.find_packages(include=["tmcmc", "tmcmc.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastprogress>=0.2.0",
        "jax>=0.4.31",
        "jaxlib>=0.4.31",
        "numpy",
        "typing_extensions",
    ],
    extras_require={
        "test": [
            "absl-py",
            "chex",
            "pytest",
        ],
    },
    long_description_content_type="text/markdown",
    keywords="probabilistic machine learning bayesian statistics sampling algorithms",
    license="Apache License 2.0",
)
