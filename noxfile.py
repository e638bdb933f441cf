"""Nox sessions for testing against multiple Polars and PyArrow versions."""

import nox

nox.options.default_venv_backend = "uv"

POLARS_VERSIONS = ["1.0.0", "1.20.0"]
PYARROW_VERSIONS = ["16.0.0", "18.0.0"]

CORE_TESTS = [
    "tests/unit",
]

ENGINE_TESTS = [
    "tests/integration",
    "tests/e2e",
]


@nox.session(python=["3.10", "3.12"])
def test_core(session: nox.Session) -> None:
    """Plan algebra, configuration, and dispatch tests."""
    session.install("-e", ".[test]")
    session.run("pytest", *CORE_TESTS, "-q")


@nox.session(python=["3.10"])
@nox.parametrize("polars", POLARS_VERSIONS)
def test_polars(session: nox.Session, polars: str) -> None:
    """Test the Polars engine against specific Polars versions."""
    session.install("-e", ".[test]", f"polars=={polars}")
    session.run("pytest", *ENGINE_TESTS, "-q")


@nox.session(python=["3.10"])
@nox.parametrize("pyarrow", PYARROW_VERSIONS)
def test_pyarrow(session: nox.Session, pyarrow: str) -> None:
    """Test file scans, the wire codec, and Flight against specific PyArrow versions."""
    session.install("-e", ".[test]", f"pyarrow=={pyarrow}")
    session.run("pytest", *CORE_TESTS, *ENGINE_TESTS, "-q")
