pytest_plugins = [
    "tests.fixtures.paths",
    "tests.fixtures.runners",
    "tests.fixtures.workflows",
]
