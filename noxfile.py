import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13", "3.14"]

nox.options.sessions = ["tests"]


def _install(session: nox.Session, *extras: str) -> None:
    """Install the project and the requested extras through Poetry."""
    args = ["poetry", "install"]
    for extra in extras:
        args += ["--extras", extra]
    session.run(*args, external=True)


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    _install(session, "test")
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_domain(session: nox.Session) -> None:
    """Aggregates, money and fees only; no API, no threads."""
    _install(session, "test")
    session.run("pytest", "-m", "domain", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_concurrency(session: nox.Session) -> None:
    """Repeat the concurrent checkout tests to shake out interleavings."""
    _install(session, "test")
    for _ in range(5):
        session.run("pytest", "-q", "tests/storefront/application/test_concurrent_checkout.py")


@nox.session(python=PYTHON_VERSIONS[-1])
def oversell(session: nox.Session) -> None:
    """Headless Locust run of the scarce-stock scenario against a running API.

    Start the API first: ``uvicorn app:app --app-dir src``.
    """
    _install(session, "load")
    host = session.posargs[0] if session.posargs else "http://localhost:8000"
    session.run(
        "locust",
        "-f",
        "loadtests/locustfile.py",
        "ScarceStockUser",
        "--headless",
        "-u",
        "100",
        "-r",
        "20",
        "-t",
        "60s",
        "--host",
        host,
    )
