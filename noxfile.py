"""Nox sessions for boardsmith."""

import nox


PYPROJECT = nox.project.load_toml("pyproject.toml")
# Drive the matrix from pyproject metadata so versions stay in sync.
PYTHON_VERSIONS = nox.project.python_versions(PYPROJECT, max_version="3.14")
nox.options.default_venv_backend = "uv"


def _install_test_deps(session: nox.Session) -> None:
    session.install("-e", ".", *nox.project.dependency_groups(PYPROJECT, "dev"))


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run pytest across all supported Python versions."""
    _install_test_deps(session)
    session.run("pytest", *session.posargs)


@nox.session(python="3.14")
def coverage(session: nox.Session) -> None:
    """Run tests with coverage reporting once (py3.14)."""
    _install_test_deps(session)
    session.run(
        "pytest",
        "--cov=boardsmith",
        "--cov-report=term-missing",
        *session.posargs,
    )


@nox.session(python="3.14")
def cli(session: nox.Session) -> None:
    """Smoke-test the console script on a sample board."""
    session.install("-e", ".")
    board = session.create_tmp() + "/board.md"
    with open(board, "w", encoding="utf-8") as handle:
        handle.write("---\n\nkanban-plugin: board\n\n---\n\n## Todo\n\n- [ ] Ship\n")
    session.run("boardsmith", "inspect", board)
    session.run("boardsmith", "export", "--dry-run", board)
