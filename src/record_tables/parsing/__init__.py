"""Parsing module for the table definition DSL."""

from record_tables.parsing.definition_parser import DefinitionParser

__all__ = [
    "DefinitionParser",
]
