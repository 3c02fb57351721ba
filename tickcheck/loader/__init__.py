#!filepath: tickcheck/loader/__init__.py
from .definition import TestDefinition
from .loader import LoadReport, TestIndex, TestLoader
from .writer import to_document, write_test

__all__ = ["TestDefinition", "LoadReport", "TestIndex", "TestLoader", "to_document", "write_test"]
