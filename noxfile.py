"""Nox sessions for the dispatcher test suite."""

import nox

nox.options.sessions = ["unit", "integration"]
nox.options.default_venv_backend = "uv"

PYTHONS = ["3.10", "3.11", "3.12", "3.13"]


@nox.session(python=PYTHONS)
def unit(session):
    """Run the unit tests with coverage of the dispatcher package."""
    session.install(".[full,dev]")
    session.run(
        "pytest",
        "tests/unit",
        "-q",
        "--cov=llm_dispatcher",
        "--cov-report=term-missing",
        *session.posargs,
    )


@nox.session(python=PYTHONS[-1])
def integration(session):
    """Run the end-to-end dispatcher scenarios (real sleeps, slower)."""
    session.install(".[full,dev]")
    session.run("pytest", "tests/integration", "-q", "--no-cov", *session.posargs)


@nox.session(python=PYTHONS[-1])
def type_check(session):
    """Run mypy type checking."""
    session.install(".[full,dev]")
    session.install("mypy")
    session.run("mypy", "src/llm_dispatcher", *session.posargs)
