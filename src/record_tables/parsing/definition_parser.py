"""Parser for the table definition DSL.

A definition file holds one or more tables::

    # comment
    table students {
        name: string not_null indexed,
        email: string unique not_null indexed,
        phone: string unique length=8,
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import ply.yacc as yacc

from record_tables.parsing.definition_lexer import DefinitionLexer
from record_tables.types import (
    FieldConstraints,
    FieldDefinition,
    TableDefinition,
    TableRegistry,
    resolve_field_type,
)


@dataclass
class FieldSpec:
    """Specification for a field before resolution."""

    name: str
    type_name: str
    modifiers: list[tuple[str, Any]] = field(default_factory=list)
    lineno: int = 0


@dataclass
class TableSpec:
    """Specification for a table before resolution."""

    name: str
    fields: list[FieldSpec]


class DefinitionParser:
    """Parser for the table definition DSL."""

    tokens = DefinitionLexer.tokens

    def __init__(self) -> None:
        self.lexer = DefinitionLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_schema(self, p: yacc.YaccProduction) -> None:
        """schema : table_list"""
        p[0] = p[1]

    def p_table_list_single(self, p: yacc.YaccProduction) -> None:
        """table_list : table_def"""
        p[0] = [p[1]]

    def p_table_list_multiple(self, p: yacc.YaccProduction) -> None:
        """table_list : table_list table_def"""
        p[0] = p[1] + [p[2]]

    def p_table_def(self, p: yacc.YaccProduction) -> None:
        """table_def : TABLE IDENTIFIER LBRACE field_list RBRACE
                     | TABLE IDENTIFIER LBRACE field_list COMMA RBRACE"""
        p[0] = TableSpec(name=p[2], fields=p[4])

    def p_table_def_empty(self, p: yacc.YaccProduction) -> None:
        """table_def : TABLE IDENTIFIER LBRACE RBRACE"""
        p[0] = TableSpec(name=p[2], fields=[])

    def p_field_list_single(self, p: yacc.YaccProduction) -> None:
        """field_list : field"""
        p[0] = [p[1]]

    def p_field_list_multiple(self, p: yacc.YaccProduction) -> None:
        """field_list : field_list COMMA field"""
        p[0] = p[1] + [p[3]]

    def p_field_plain(self, p: yacc.YaccProduction) -> None:
        """field : IDENTIFIER COLON IDENTIFIER"""
        p[0] = FieldSpec(name=p[1], type_name=p[3], lineno=p.lineno(1))

    def p_field_with_modifiers(self, p: yacc.YaccProduction) -> None:
        """field : IDENTIFIER COLON IDENTIFIER modifier_list"""
        p[0] = FieldSpec(name=p[1], type_name=p[3], modifiers=p[4], lineno=p.lineno(1))

    def p_modifier_list_single(self, p: yacc.YaccProduction) -> None:
        """modifier_list : modifier"""
        p[0] = [p[1]]

    def p_modifier_list_multiple(self, p: yacc.YaccProduction) -> None:
        """modifier_list : modifier_list modifier"""
        p[0] = p[1] + [p[2]]

    def p_modifier_flag(self, p: yacc.YaccProduction) -> None:
        """modifier : UNIQUE
                    | NOT_NULL
                    | INDEXED"""
        p[0] = (p[1], True)

    def p_modifier_value(self, p: yacc.YaccProduction) -> None:
        """modifier : LENGTH EQUALS INTEGER
                    | MIN EQUALS INTEGER
                    | MAX EQUALS INTEGER"""
        p[0] = (p[1], p[3])

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (line {p.lineno})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> TableRegistry:
        """Parse table definitions and return a populated TableRegistry."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self.lexer.lexer.lineno = 1
        specs = self.parser.parse(data, lexer=self.lexer.lexer)
        if specs is None:
            specs = []

        registry = TableRegistry()
        for spec in specs:
            registry.register(self._resolve_table(spec))
        return registry

    def _resolve_table(self, spec: TableSpec) -> TableDefinition:
        """Resolve a table spec into a TableDefinition."""
        seen: set[str] = set()
        fields: list[FieldDefinition] = []
        for field_spec in spec.fields:
            if field_spec.name in seen:
                raise ValueError(
                    f"Table '{spec.name}': duplicate field '{field_spec.name}'"
                )
            seen.add(field_spec.name)
            fields.append(self._resolve_field(spec.name, field_spec))
        return TableDefinition(name=spec.name, fields=tuple(fields))

    def _resolve_field(self, table_name: str, spec: FieldSpec) -> FieldDefinition:
        """Resolve a field spec, folding its modifiers into constraints."""
        constraints: dict[str, Any] = {}
        indexed = False
        for key, value in spec.modifiers:
            if key == "indexed":
                indexed = True
                continue
            if key in constraints:
                raise ValueError(
                    f"Table '{table_name}': modifier '{key}' repeated on field "
                    f"'{spec.name}' (line {spec.lineno})"
                )
            constraints[key] = value

        return FieldDefinition(
            name=spec.name,
            field_type=resolve_field_type(spec.type_name),
            constraints=FieldConstraints.from_dict(constraints),
            indexed=indexed,
        )
