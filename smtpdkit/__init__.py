"""Building blocks for mail server add-ons: framing, randomness, string helpers, trees and tables."""

__version__ = "5.7.2"

__all__ = [
    "arc4random",
    "base64",
    "chacha",
    "imsg",
    "rbtree",
    "splaytree",
    "strutil",
    "table_sqlite",
    "table_stub",
    "tempname",
]