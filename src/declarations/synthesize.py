"""Fuse directive blocks with Lua statements into declaration records.

Per statement/block pair the directive tags are ranked
class > enum > declared object > alias; function-defining statements always
yield a function declaration and ``return Name`` without annotations yields
an export marker. Orphaned blocks produce one class per ``@class`` and one
alias per ``@alias``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import orjson

from declarations.models import (
    INSTANCE_SEPARATOR,
    STATIC_SEPARATOR,
    AliasDeclaration,
    ClassDeclaration,
    Declaration,
    DeclaredObject,
    EnumDeclaration,
    ExportMarker,
    FieldInfo,
    FileDeclarations,
    FunctionDeclaration,
    ParamInfo,
)
from declarations.overloads import merge
from declarations.typescript import (
    RenderedType,
    render_index_signatures,
    render_type,
    render_variadic,
    safe_identifier,
)
from docparse.directives import (
    AliasDirective,
    ClassDirective,
    CommentDirective,
    EnumDirective,
    FieldDirective,
    GenericDirective,
    ParamDirective,
    ReturnDirective,
)
from docparse.type_parser import parse_type
from docparse.types import StaticArrayType
from log import get_logger
from luasyntax.associate import Association, CommentBlock
from luasyntax.nodes import (
    AssignmentStatement,
    BooleanLiteral,
    Chunk,
    Expression,
    FunctionExpression,
    FunctionStatement,
    Identifier,
    IndexExpression,
    LocalStatement,
    MemberExpression,
    NilLiteral,
    NumericLiteral,
    OtherExpression,
    OtherStatement,
    ReturnStatement,
    Statement,
    StringLiteral,
    TableConstructor,
    UnaryExpression,
    VarargLiteral,
    expression_name,
)

logger = get_logger(__name__)

# Supertypes that turn a class into a plain type alias.
PRIMITIVE_SUPERTYPES = frozenset(
    {
        "string",
        "number",
        "integer",
        "float",
        "boolean",
        "any",
        "unknown",
        "nil",
        "userdata",
        "lightuserdata",
    }
)

_FUNCTION_LITERAL_TYPE = "(...args: Array<any>) => any"
_RECORD_LITERAL_TYPE = "Record<string, any>"


@dataclass(frozen=True)
class Synthesis:
    declarations: tuple[Declaration, ...] = ()
    used_names: frozenset[str] = frozenset()


@dataclass
class _BlockFacts:
    """Directives of one block sorted by tag."""

    classes: list[ClassDirective] = field(default_factory=list)
    enums: list[EnumDirective] = field(default_factory=list)
    aliases: list[AliasDirective] = field(default_factory=list)
    fields: list[FieldDirective] = field(default_factory=list)
    params: list[ParamDirective] = field(default_factory=list)
    returns: list[ReturnDirective] = field(default_factory=list)
    generics: list[str] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)
    annotated: bool = False

    @classmethod
    def from_block(cls, block: CommentBlock) -> _BlockFacts:
        facts = cls()
        for directive in block.directives:
            if isinstance(directive, CommentDirective):
                facts.comments.append(directive.text)
                continue
            facts.annotated = True
            if isinstance(directive, ClassDirective):
                facts.classes.append(directive)
            elif isinstance(directive, EnumDirective):
                facts.enums.append(directive)
            elif isinstance(directive, AliasDirective):
                facts.aliases.append(directive)
            elif isinstance(directive, FieldDirective):
                facts.fields.append(directive)
            elif isinstance(directive, ParamDirective):
                facts.params.append(directive)
            elif isinstance(directive, ReturnDirective):
                facts.returns.append(directive)
            elif isinstance(directive, GenericDirective):
                facts.generics.extend(directive.names)
        return facts


def _table_literal(values: tuple[Expression, ...]) -> TableConstructor | None:
    for value in values:
        if isinstance(value, TableConstructor):
            return value
    return None


def _literal_type(expr: Expression) -> str:
    if isinstance(expr, StringLiteral):
        return "string"
    if isinstance(expr, NumericLiteral):
        return "number"
    if isinstance(expr, BooleanLiteral):
        return "boolean"
    if isinstance(expr, FunctionExpression):
        return _FUNCTION_LITERAL_TYPE
    if isinstance(expr, TableConstructor):
        return _RECORD_LITERAL_TYPE
    if isinstance(expr, UnaryExpression):
        if expr.operator == "not":
            return "boolean"
        if expr.operator in ("-", "#", "~"):
            return "number"
    return "any"


def _expression_text(expr: Expression) -> str:
    if isinstance(expr, StringLiteral):
        return expr.value
    if isinstance(expr, NumericLiteral):
        return expr.raw
    if isinstance(expr, BooleanLiteral):
        return "true" if expr.value else "false"
    if isinstance(expr, NilLiteral):
        return "nil"
    if isinstance(expr, VarargLiteral):
        return "..."
    if isinstance(expr, UnaryExpression):
        return f"{expr.operator}{_expression_text(expr.argument)}"
    if isinstance(expr, (Identifier, MemberExpression, IndexExpression)):
        return expression_name(expr) or ""
    if isinstance(expr, OtherExpression):
        return expr.text
    if isinstance(expr, (TableConstructor, FunctionExpression)):
        return ""
    raise AssertionError(f"unknown expression: {expr!r}")


def _enum_value(expr: Expression) -> str:
    """Numbers (with an optional unary minus) stay bare; all else is quoted."""
    if isinstance(expr, NumericLiteral):
        return expr.raw
    if (
        isinstance(expr, UnaryExpression)
        and expr.operator == "-"
        and isinstance(expr.argument, NumericLiteral)
    ):
        return f"-{expr.argument.raw}"
    return orjson.dumps(_expression_text(expr)).decode()


def _enum_key(entry_name: str | None, key: Expression | None) -> str | None:
    if entry_name:
        return entry_name
    if isinstance(key, StringLiteral):
        if key.value.isidentifier():
            return key.value
        return orjson.dumps(key.value).decode()
    return None


def _assignment_target(statement: LocalStatement | AssignmentStatement) -> str | None:
    if isinstance(statement, LocalStatement):
        return statement.variables[0] if statement.variables else None
    if not statement.targets:
        return None
    return expression_name(statement.targets[0])


def _first_extends(text: str, directive: ClassDirective) -> RenderedType:
    """Render the first entry of a comma-separated supertype list."""
    node = parse_type(text, line=directive.line, source=text)
    if isinstance(node, StaticArrayType):
        node = node.elements[0]
    return render_type(node)


class DeclarationSynthesizer:
    """Turns statement/comment-block pairs into declarations.

    ``module_generics`` are the ``@generic`` names gathered from orphaned
    blocks; classes without their own generics fall back to them.
    """

    def __init__(self, *, module_generics: tuple[str, ...] = ()) -> None:
        self.module_generics = module_generics

    def synthesize(self, statement: Statement | None, block: CommentBlock) -> Synthesis:
        facts = _BlockFacts.from_block(block)

        if statement is None:
            return self._orphan(facts)

        if isinstance(statement, FunctionStatement):
            name = expression_name(statement.identifier)
            if name is None:
                return Synthesis()
            return self._function(name, statement.parameters, facts)

        if isinstance(statement, (LocalStatement, AssignmentStatement)):
            return self._assignment(statement, facts)

        if isinstance(statement, ReturnStatement):
            if facts.annotated:
                return self._orphan(facts)
            markers = tuple(
                ExportMarker(name=arg.name)
                for arg in statement.arguments
                if isinstance(arg, Identifier)
            )
            return Synthesis(declarations=markers)

        if isinstance(statement, OtherStatement):
            return self._orphan(facts)

        raise AssertionError(f"unknown statement: {statement!r}")

    # -- statement shapes ----------------------------------------------------

    def _assignment(
        self, statement: LocalStatement | AssignmentStatement, facts: _BlockFacts
    ) -> Synthesis:
        name = _assignment_target(statement)
        table = _table_literal(statement.init)

        if len(statement.init) == 1 and isinstance(statement.init[0], FunctionExpression):
            if name is not None and not facts.classes:
                return self._function(name, statement.init[0].parameters, facts)

        if facts.classes:
            return self._class(facts.classes[0], facts, facts.fields, table=table)

        if facts.enums and table is not None:
            enum_name = facts.enums[0].name or name
            if enum_name:
                return self._enum(enum_name, table, facts)

        plain_target = isinstance(statement, LocalStatement) or (
            bool(statement.targets) and isinstance(statement.targets[0], Identifier)
        )
        if table is not None and plain_target and name is not None:
            return Synthesis(
                declarations=(DeclaredObject(name=name, comments=facts.comments),)
            )

        return self._aliases(facts)

    def _orphan(self, facts: _BlockFacts) -> Synthesis:
        declarations: list[Declaration] = []
        used: set[str] = set()

        # Fields bind to the closest preceding class directive.
        for index, directive in enumerate(facts.classes):
            next_line = (
                facts.classes[index + 1].line
                if index + 1 < len(facts.classes)
                else None
            )
            owned = [
                f
                for f in facts.fields
                if f.line > directive.line and (next_line is None or f.line < next_line)
            ]
            if index == 0:
                owned = [f for f in facts.fields if f.line < directive.line] + owned
            synthesis = self._class(directive, facts, owned, table=None)
            declarations.extend(synthesis.declarations)
            used.update(synthesis.used_names)

        aliases = self._aliases(facts)
        declarations.extend(aliases.declarations)
        used.update(aliases.used_names)
        return Synthesis(declarations=tuple(declarations), used_names=frozenset(used))

    # -- declaration kinds ---------------------------------------------------

    def _class(
        self,
        directive: ClassDirective,
        facts: _BlockFacts,
        field_directives: list[FieldDirective],
        *,
        table: TableConstructor | None,
    ) -> Synthesis:
        generics = list(directive.generics or facts.generics or self.module_generics)
        used: set[str] = set()

        extends: str | None = None
        is_alias_like = False
        if directive.extends:
            first = directive.extends.split(",")[0].strip()
            is_alias_like = first in PRIMITIVE_SUPERTYPES
            rendered = _first_extends(directive.extends, directive)
            extends = rendered.text
            used.update(rendered.names)

        table_shape: list[str] = []
        if directive.table_type is not None:
            table_shape, names = render_index_signatures(directive.table_type)
            used.update(names)

        fields: list[FieldInfo] = []
        for field_directive in field_directives:
            rendered = render_type(field_directive.type)
            used.update(rendered.names)
            fields.append(
                FieldInfo(
                    name=field_directive.name,
                    type=rendered.text,
                    description=field_directive.description,
                )
            )

        if table is not None:
            declared = {f.name for f in fields}
            for entry in table.entries:
                if entry.name is None or entry.name in declared:
                    continue
                declared.add(entry.name)
                fields.append(FieldInfo(name=entry.name, type=_literal_type(entry.value)))

        declaration = ClassDeclaration(
            name=directive.name,
            generics=generics,
            extends=extends,
            fields=fields,
            table_shape=table_shape,
            is_alias_like=is_alias_like,
            comments=facts.comments,
        )
        return Synthesis(
            declarations=(declaration,), used_names=frozenset(used - set(generics))
        )

    def _enum(
        self, name: str, table: TableConstructor, facts: _BlockFacts
    ) -> Synthesis:
        entries: list[tuple[str, str]] = []
        for entry in table.entries:
            key = _enum_key(entry.name, entry.key)
            if key is None:
                continue
            entries.append((key, _enum_value(entry.value)))
        return Synthesis(
            declarations=(
                EnumDeclaration(name=name, entries=entries, comments=facts.comments),
            )
        )

    def _aliases(self, facts: _BlockFacts) -> Synthesis:
        declarations: list[Declaration] = []
        used: set[str] = set()
        for directive in facts.aliases:
            rendered = render_type(directive.type)
            used.update(rendered.names)
            declarations.append(
                AliasDeclaration(
                    name=directive.name, type=rendered.text, comments=facts.comments
                )
            )
        return Synthesis(declarations=tuple(declarations), used_names=frozenset(used))

    def _function(
        self, name: str, parameters: tuple[str, ...], facts: _BlockFacts
    ) -> Synthesis:
        params: dict[str, ParamInfo] = {}
        used: set[str] = set()
        has_self = INSTANCE_SEPARATOR in name

        if facts.params:
            for directive in facts.params:
                if directive.name == "self":
                    has_self = True
                    continue
                if directive.name == "...":
                    rendered = render_variadic(directive.type)
                    params["...args"] = ParamInfo(
                        type=rendered.text, description=directive.description
                    )
                else:
                    rendered = render_type(directive.type)
                    params[safe_identifier(directive.name)] = ParamInfo(
                        type=rendered.text, description=directive.description
                    )
                used.update(rendered.names)
        else:
            for parameter in parameters:
                if parameter == "self":
                    has_self = True
                elif parameter == "...":
                    params["...args"] = ParamInfo(type=render_variadic().text)
                else:
                    params[safe_identifier(parameter)] = ParamInfo(type="any")

        if has_self and INSTANCE_SEPARATOR not in name:
            index = name.rfind(STATIC_SEPARATOR)
            if index >= 0:
                name = f"{name[:index]}{INSTANCE_SEPARATOR}{name[index + 1:]}"

        return_type: str | None = None
        if facts.returns:
            rendered_returns = [render_type(r.type) for r in facts.returns]
            for rendered in rendered_returns:
                used.update(rendered.names)
            if len(rendered_returns) == 1:
                return_type = rendered_returns[0].text
            else:
                return_type = f"[{', '.join(r.text for r in rendered_returns)}]"

        is_static = (
            INSTANCE_SEPARATOR not in name and STATIC_SEPARATOR in name
        )
        declaration = FunctionDeclaration(
            qualified_name=name,
            is_static=is_static,
            generics=list(facts.generics),
            params=params,
            return_type=return_type,
            comments=facts.comments,
        )
        return Synthesis(
            declarations=(declaration,),
            used_names=frozenset(used - set(facts.generics)),
        )


def _module_generics(association: Association) -> tuple[str, ...]:
    names: list[str] = []
    for block in association.orphaned:
        for directive in block.directives:
            if isinstance(directive, GenericDirective):
                names.extend(n for n in directive.names if n not in names)
    return tuple(names)


def _sole_member_owner(synthesis: Synthesis) -> str | None:
    if len(synthesis.declarations) != 1:
        return None
    declaration = synthesis.declarations[0]
    if isinstance(declaration, FunctionDeclaration):
        return declaration.owner
    return None


def synthesize_chunk(
    chunk: Chunk, association: Association, *, path: str
) -> FileDeclarations:
    """Synthesize every declaration of one file.

    Attached pairs run in source order, then orphaned blocks. Function
    declarations sharing a qualified name are merged; a repeated
    class/enum/alias name keeps the first declaration.
    """
    synthesizer = DeclarationSynthesizer(module_generics=_module_generics(association))

    results: list[Synthesis] = [
        synthesizer.synthesize(statement, association.block_for(statement))
        for statement in chunk.body
    ]
    results.extend(synthesizer.synthesize(None, block) for block in association.orphaned)

    declarations: list[Declaration] = []
    functions: dict[str, FunctionDeclaration] = {}
    type_names: set[str] = set()
    used: set[str] = set()
    member_used: dict[str, set[str]] = {}

    for synthesis in results:
        owner = _sole_member_owner(synthesis)
        if owner is None:
            used.update(synthesis.used_names)
        else:
            member_used.setdefault(owner, set()).update(synthesis.used_names)
        for declaration in synthesis.declarations:
            if isinstance(declaration, FunctionDeclaration):
                existing = functions.get(declaration.qualified_name)
                if existing is None:
                    functions[declaration.qualified_name] = declaration
                    declarations.append(declaration)
                else:
                    merged = merge(existing, declaration)
                    functions[declaration.qualified_name] = merged
                    declarations[declarations.index(existing)] = merged
                continue
            if isinstance(declaration, (ClassDeclaration, EnumDeclaration, AliasDeclaration)):
                if declaration.name in type_names:
                    logger.warning(
                        "%s: duplicate %s '%s' ignored",
                        path,
                        declaration.kind,
                        declaration.name,
                    )
                    continue
                type_names.add(declaration.name)
            declarations.append(declaration)

    # Methods render inside their class body, where its generics are in scope.
    class_generics = {
        declaration.name: set(declaration.generics)
        for declaration in declarations
        if isinstance(declaration, ClassDeclaration) and not declaration.is_alias_like
    }
    for owner, names in member_used.items():
        used.update(names - class_generics.get(owner, set()))

    return FileDeclarations(path=path, declarations=declarations, used_names=sorted(used))


__all__ = [
    "PRIMITIVE_SUPERTYPES",
    "DeclarationSynthesizer",
    "Synthesis",
    "synthesize_chunk",
]
