"""
Root pytest hooks for ibuild.

Tests marked ``integration`` shell out to the installed ``ibuild`` script
and are deselected by the default ``-m "not integration"`` in
pyproject.toml. Pass ``--full`` to run them as well.
"""


def pytest_addoption(parser):
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Also run integration tests that invoke the installed ibuild CLI",
    )


def pytest_configure(config):
    if not config.getoption("--full"):
        return
    # Only drop the marker filter that pyproject.toml adds; keep user -m values
    if config.getoption("-m", "") == "not integration":
        config.option.markexpr = ""
