from .cli import cli
from .query import query
from .snapshots import compress, diff, validate
from .verify import verify

__all__ = ["cli", "compress", "diff", "query", "validate", "verify"]


def main():
    cli(obj={})
