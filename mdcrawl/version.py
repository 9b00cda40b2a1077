"""MDCrawl Meta information."""

__title__ = "mdcrawl"
__description__ = (
    "URL-to-Markdown conversion service with an embedded "
    "breadth-first and best-first deep crawler."
)
__version__ = "0.4.1"
__author__ = "Jesus Lara"
__author_email__ = "jesuslarag@gmail.com"
__license__ = "MIT"
__copyright__ = "Copyright (c) 2020-2024 Jesus Lara"
