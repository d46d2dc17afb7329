from .base import BaseSource
from .http_source import ChainedHTTPSource
from .piratebay import PirateBaySource
from .rarbg import RarbgSource
from .x1337 import X1337Source
from .yts import YTSSource

__all__ = [
    "BaseSource",
    "ChainedHTTPSource",
    "PirateBaySource",
    "RarbgSource",
    "X1337Source",
    "YTSSource",
    "default_sources",
]


def default_sources(settings=None):
    """Built-in sources in registration order"""
    return [
        YTSSource(settings),
        PirateBaySource(settings),
        X1337Source(settings),
        RarbgSource(settings),
    ]
