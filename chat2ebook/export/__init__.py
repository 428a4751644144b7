"""Document assemblers for every supported export format."""

from .epub import EpubAssembler
from .html import HtmlAssembler
from .plain_text import PlainTextAssembler
from .word import WordAssembler

__all__ = [
    "EpubAssembler",
    "HtmlAssembler",
    "PlainTextAssembler",
    "WordAssembler",
]
