"""
MDCrawl settings.

Process-wide defaults for deep crawl requests and checkpoint storage,
resolved through navconfig (environment variables or ``env/.env``).
"""
from pathlib import Path
from navconfig import config, BASE_DIR


## Deep crawl limits
DEEPCRAWL_MAX_DEPTH = config.getint('DEEPCRAWL_MAX_DEPTH', fallback=6)
DEEPCRAWL_MAX_PAGES = config.getint('DEEPCRAWL_MAX_PAGES', fallback=200)
DEEPCRAWL_DEFAULT_DEPTH = config.getint('DEEPCRAWL_DEFAULT_DEPTH', fallback=1)
DEEPCRAWL_DEFAULT_PAGES = config.getint('DEEPCRAWL_DEFAULT_PAGES', fallback=10)

## Filter list limits
DEEPCRAWL_FILTER_ENTRY_MAX = config.getint('DEEPCRAWL_FILTER_ENTRY_MAX', fallback=512)
DEEPCRAWL_FILTER_LIST_MAX = config.getint('DEEPCRAWL_FILTER_LIST_MAX', fallback=50)

## Checkpoints
DEEPCRAWL_CHECKPOINT_DIR = Path(
    config.get(
        'DEEPCRAWL_CHECKPOINT_DIR',
        fallback=str(Path(BASE_DIR).joinpath('deepcrawl_checkpoints'))
    )
)
DEEPCRAWL_CHECKPOINT_TTL = config.getint('DEEPCRAWL_CHECKPOINT_TTL', fallback=86400)
