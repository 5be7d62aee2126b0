import logging

from colorama import Fore, Style, init

init()

logging.basicConfig(level=logging.INFO)

pytest_plugins = ["fixtures.fs", "fixtures.cli", "fixtures.snapshot_fixtures"]


def _squash(doc):
    return " ".join(doc.split()) + " " if doc else ""


def pytest_itemcollected(item):
    """
    Show the docstrings of a test and of its class next to the test id.
    """
    parent_doc = _squash(getattr(item.parent.obj, "__doc__", None))
    node_doc = _squash(getattr(item.obj, "__doc__", None))
    if parent_doc or node_doc:
        item._nodeid = (
            Fore.YELLOW
            + parent_doc
            + node_doc
            + "\n"
            + Style.RESET_ALL
            + item._nodeid
        )
