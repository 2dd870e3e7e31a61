"""VocabMaster: a terminal English vocabulary trainer."""

__version__ = "0.1.0"
