"""AST-based Python code generation for the models, methods and client modules."""

from __future__ import annotations

import ast
from enum import Enum
from typing import Optional

from .model_types import (
    DeclarationDef,
    FieldDef,
    MethodEntry,
    MethodTable,
    SchemaKind,
    VariantDef,
)
from .naming import (
    is_plain_identifier,
    rpc_method_to_function_name,
    sanitize_identifier,
    unique_name,
)
from .convenience import NearRpcConvenienceMixin
from .transport import JsonRpcTransport
from .type_mapper import PREAMBLE_ALIASES

_TYPING_IMPORT_ORDER: tuple[str, ...] = (
    "Annotated",
    "Literal",
    "Optional",
    "Union",
)

_PYDANTIC_IMPORT_ORDER: tuple[str, ...] = (
    "BaseModel",
    "ConfigDict",
    "Field",
    "RootModel",
)

# Operation ids taking no request parameters.
PARAMETERLESS_METHODS: frozenset[str] = frozenset({"status", "network_info"})

ENUM_CLASS_NAME = "RpcMethod"
CLIENT_CLASS_NAME = "NearRpcClient"
TRANSPORT_MODULE = "near_rpc_codegen.transport"
CONVENIENCE_MODULE = "near_rpc_codegen.convenience"
JSON_TYPES_MODULE = "near_rpc_codegen.json_types"

_ENUM_RESERVED: frozenset[str] = frozenset({"all_methods", "mro", *dir(str), *dir(Enum)})
_CLIENT_RESERVED: frozenset[str] = frozenset(
    {"config", *dir(JsonRpcTransport), *dir(NearRpcConvenienceMixin)}
)


def enum_member_names(table: MethodTable) -> dict[str, str]:
    """Map each operation id to its ``RpcMethod`` member name."""
    members: dict[str, str] = {}
    used: set[str] = set()
    for operation_id in table.operation_ids:
        candidate = (
            operation_id
            if is_plain_identifier(operation_id)
            else sanitize_identifier(operation_id, lowercase=False)
        )
        if candidate in _ENUM_RESERVED:
            candidate = f"{candidate}_method"
        member = unique_name(candidate, used, first_suffix=2)
        used.add(member)
        members[operation_id] = member
    return members


def client_method_names(table: MethodTable) -> dict[str, str]:
    """Map each operation id to the name of its client coroutine."""
    names: dict[str, str] = {}
    used: set[str] = set(_CLIENT_RESERVED)
    for operation_id in table.operation_ids:
        name = unique_name(rpc_method_to_function_name(operation_id), used, first_suffix=2)
        used.add(name)
        names[operation_id] = name
    return names


def render_models_module(
    declarations: tuple[DeclarationDef, ...],
    *,
    openapi_version: str,
) -> str:
    """Render the declarations as a pydantic models module.

    Args:
        declarations (tuple[DeclarationDef, ...]): Declarations sorted by schema name.
        openapi_version (str): Source document version, recorded in the module docstring.

    Returns:
        str: Generated Python source code.
    """
    definitions: list[ast.stmt] = []
    for alias_name, annotation in PREAMBLE_ALIASES.items():
        definitions.append(_type_alias(alias_name, annotation))
    for declaration in declarations:
        definitions.extend(_declaration_to_ast(declaration))

    body: list[ast.stmt] = [
        _docstring(f"Models generated from NEAR JSON-RPC OpenAPI {openapi_version}."),
        _future_import(),
    ]
    body.extend(_build_imports(definitions))
    body.extend(definitions)
    return _unparse(body)


def render_methods_module(table: MethodTable, *, openapi_version: str) -> str:
    """Render the ``RpcMethod`` enumeration and its lookup tables.

    Args:
        table (MethodTable): Extracted method table.
        openapi_version (str): Source document version, recorded in the module docstring.

    Returns:
        str: Generated Python source code.
    """
    members = enum_member_names(table)
    entries = sorted(table.entries, key=lambda entry: entry.operation_id)

    enum_body: list[ast.stmt] = [_docstring("Every RPC method exposed by the NEAR JSON-RPC API.")]
    for entry in entries:
        enum_body.append(
            ast.Assign(
                targets=[ast.Name(id=members[entry.operation_id], ctx=ast.Store())],
                value=ast.Constant(value=entry.operation_id),
            )
        )
    enum_body.append(_all_methods_classmethod())

    path_keys: list[Optional[ast.expr]] = []
    path_values: list[ast.expr] = []
    for entry in sorted(table.entries, key=lambda entry: entry.path):
        path_keys.append(ast.Constant(value=entry.path))
        path_values.append(_member_ref(members[entry.operation_id]))

    body: list[ast.stmt] = [
        _docstring(f"RPC methods generated from NEAR JSON-RPC OpenAPI {openapi_version}."),
        _future_import(),
        ast.ImportFrom(module="collections.abc", names=[ast.alias(name="Mapping")], level=0),
        ast.ImportFrom(module="enum", names=[ast.alias(name="Enum")], level=0),
        ast.ClassDef(
            name=ENUM_CLASS_NAME,
            bases=[ast.Name(id="str", ctx=ast.Load()), ast.Name(id="Enum", ctx=ast.Load())],
            keywords=[],
            body=enum_body,
            decorator_list=[],
            type_params=[],
        ),
        _mapping_assign(
            "PATH_TO_METHOD",
            "Mapping[str, RpcMethod]",
            ast.Dict(keys=path_keys, values=path_values),
        ),
        _schema_mapping("REQUEST_SCHEMAS", entries, members, request=True),
        _schema_mapping("RESPONSE_SCHEMAS", entries, members, request=False),
    ]
    return _unparse(body)


def render_client_module(table: MethodTable, *, openapi_version: str) -> str:
    """Render the async client class with one coroutine per RPC method.

    Args:
        table (MethodTable): Extracted method table.
        openapi_version (str): Source document version, recorded in the module docstring.

    Returns:
        str: Generated Python source code.
    """
    members = enum_member_names(table)
    names = client_method_names(table)

    class_body: list[ast.stmt] = [
        _docstring(
            "Typed async client for the NEAR JSON-RPC API.\n\n"
            "Every coroutine returns the ``result`` member of the response."
        )
    ]
    for entry in sorted(table.entries, key=lambda entry: entry.operation_id):
        class_body.append(
            _client_method(
                name=names[entry.operation_id],
                member=members[entry.operation_id],
                description=entry.description,
                takes_params=entry.operation_id not in PARAMETERLESS_METHODS,
            )
        )

    body: list[ast.stmt] = [
        _docstring(f"Async client generated from NEAR JSON-RPC OpenAPI {openapi_version}."),
        _future_import(),
        ast.ImportFrom(
            module=JSON_TYPES_MODULE,
            names=[ast.alias(name="JSONObject"), ast.alias(name="JSONValue")],
            level=0,
        ),
        ast.ImportFrom(
            module=CONVENIENCE_MODULE,
            names=[ast.alias(name="NearRpcConvenienceMixin")],
            level=0,
        ),
        ast.ImportFrom(
            module=TRANSPORT_MODULE,
            names=[ast.alias(name="JsonRpcTransport")],
            level=0,
        ),
        ast.ImportFrom(module="methods", names=[ast.alias(name=ENUM_CLASS_NAME)], level=1),
        ast.ClassDef(
            name=CLIENT_CLASS_NAME,
            bases=[
                ast.Name(id="NearRpcConvenienceMixin", ctx=ast.Load()),
                ast.Name(id="JsonRpcTransport", ctx=ast.Load()),
            ],
            keywords=[],
            body=class_body,
            decorator_list=[],
            type_params=[],
        ),
    ]
    return _unparse(body)


def render_package_init(*, openapi_version: str, method_count: int) -> str:
    """Render the generated package ``__init__.py``."""
    docstring = "\n".join(
        [
            f"NEAR JSON-RPC client generated from OpenAPI {openapi_version}.",
            "",
            f"Methods: {method_count}",
            "Modules:",
            "- .models: pydantic declarations for components.schemas",
            "- .methods: RpcMethod enumeration and path lookup tables",
            "- .client: NearRpcClient coroutine wrappers",
        ]
    )
    exported = (CLIENT_CLASS_NAME, "PATH_TO_METHOD", ENUM_CLASS_NAME)
    body: list[ast.stmt] = [
        _docstring(docstring),
        ast.ImportFrom(module="client", names=[ast.alias(name=CLIENT_CLASS_NAME)], level=1),
        ast.ImportFrom(
            module="methods",
            names=[ast.alias(name="PATH_TO_METHOD"), ast.alias(name=ENUM_CLASS_NAME)],
            level=1,
        ),
        ast.Assign(
            targets=[ast.Name(id="__all__", ctx=ast.Store())],
            value=ast.List(elts=[ast.Constant(value=name) for name in exported], ctx=ast.Load()),
        ),
    ]
    return _unparse(body)


def _declaration_to_ast(declaration: DeclarationDef) -> list[ast.stmt]:
    if declaration.kind is SchemaKind.ALIAS:
        if declaration.annotation is None:
            raise ValueError(f"Alias {declaration.name} missing annotation")
        statements: list[ast.stmt] = [_type_alias(declaration.name, declaration.annotation)]
        if declaration.description:
            statements.append(_docstring(declaration.description))
        return statements

    if declaration.kind is SchemaKind.UNION:
        statements = [_variant_to_ast(variant) for variant in declaration.variants]
        members = [variant.class_name for variant in declaration.variants]
        root_annotation = members[0] if len(members) == 1 else f"Union[{', '.join(members)}]"
        statements.append(
            _class(
                name=declaration.name,
                base="RootModel",
                docstring=declaration.description,
                body=[_root_field(root_annotation)],
            )
        )
        return statements

    return [
        _class(
            name=declaration.name,
            base="BaseModel",
            docstring=declaration.description,
            body=_fields_body(declaration.fields),
        )
    ]


def _variant_to_ast(variant: VariantDef) -> ast.ClassDef:
    if variant.literal is not None:
        literal_annotation = f"Literal[{variant.literal!r}]"
        return _class(
            name=variant.class_name,
            base="RootModel",
            docstring=None,
            body=[_root_field(literal_annotation, default=variant.literal)],
        )
    if variant.annotation is not None:
        return _class(
            name=variant.class_name,
            base="RootModel",
            docstring=None,
            body=[_root_field(variant.annotation)],
        )
    return _class(
        name=variant.class_name,
        base="BaseModel",
        docstring=None,
        body=_fields_body(variant.fields),
    )


def _fields_body(fields: tuple[FieldDef, ...]) -> list[ast.stmt]:
    body: list[ast.stmt] = []
    if any(field.source_name != field.name for field in fields):
        body.append(
            ast.Assign(
                targets=[ast.Name(id="model_config", ctx=ast.Store())],
                value=ast.Call(
                    func=ast.Name(id="ConfigDict", ctx=ast.Load()),
                    args=[],
                    keywords=[ast.keyword(arg="populate_by_name", value=ast.Constant(value=True))],
                ),
            )
        )
    body.extend(_field_to_ast(field) for field in fields)
    return body


def _field_to_ast(field: FieldDef) -> ast.AnnAssign:
    keywords: list[ast.keyword] = []
    if field.source_name != field.name:
        keywords.append(ast.keyword(arg="alias", value=ast.Constant(value=field.source_name)))
    if field.description:
        keywords.append(ast.keyword(arg="description", value=ast.Constant(value=field.description)))

    if field.required:
        annotation = field.annotation
        default_value = ast.Constant(value=Ellipsis)
    else:
        annotation = f"Optional[{field.annotation}]"
        default_value = ast.Constant(value=None)

    return ast.AnnAssign(
        target=ast.Name(id=field.name, ctx=ast.Store()),
        annotation=_expr(annotation),
        value=ast.Call(
            func=ast.Name(id="Field", ctx=ast.Load()),
            args=[default_value],
            keywords=keywords,
        ),
        simple=1,
    )


def _root_field(annotation: str, *, default: Optional[str] = None) -> ast.AnnAssign:
    return ast.AnnAssign(
        target=ast.Name(id="root", ctx=ast.Store()),
        annotation=_expr(annotation),
        value=ast.Constant(value=default) if default is not None else None,
        simple=1,
    )


def _class(
    *,
    name: str,
    base: str,
    docstring: Optional[str],
    body: list[ast.stmt],
) -> ast.ClassDef:
    class_body: list[ast.stmt] = []
    if docstring:
        class_body.append(_docstring(docstring))
    class_body.extend(body)
    if not class_body:
        class_body.append(ast.Pass())
    return ast.ClassDef(
        name=name,
        bases=[ast.Name(id=base, ctx=ast.Load())],
        keywords=[],
        body=class_body,
        decorator_list=[],
        type_params=[],
    )


def _type_alias(name: str, annotation: str) -> ast.TypeAlias:
    return ast.TypeAlias(
        name=ast.Name(id=name, ctx=ast.Store()),
        type_params=[],
        value=_expr(annotation),
    )


def _all_methods_classmethod() -> ast.FunctionDef:
    return ast.FunctionDef(
        name="all_methods",
        args=_arguments(["cls"]),
        body=[
            _docstring("Return every RPC method name in enumeration order."),
            ast.Return(value=_expr("[member.value for member in cls]")),
        ],
        decorator_list=[ast.Name(id="classmethod", ctx=ast.Load())],
        returns=_expr("list[str]"),
        type_params=[],
    )


def _client_method(
    *,
    name: str,
    member: str,
    description: Optional[str],
    takes_params: bool,
) -> ast.AsyncFunctionDef:
    call_args: list[ast.expr] = [_member_ref(member)]
    if takes_params:
        arguments = _arguments(["self", "params"], annotations={"params": "JSONObject"})
        call_args.append(ast.Name(id="params", ctx=ast.Load()))
    else:
        arguments = _arguments(["self"])

    body: list[ast.stmt] = []
    if description:
        body.append(_docstring(description))
    body.append(
        ast.Return(
            value=ast.Await(
                value=ast.Call(
                    func=ast.Attribute(
                        value=ast.Name(id="self", ctx=ast.Load()),
                        attr="invoke",
                        ctx=ast.Load(),
                    ),
                    args=call_args,
                    keywords=[],
                )
            )
        )
    )
    return ast.AsyncFunctionDef(
        name=name,
        args=arguments,
        body=body,
        decorator_list=[],
        returns=ast.Name(id="JSONValue", ctx=ast.Load()),
        type_params=[],
    )


def _arguments(names: list[str], *, annotations: Optional[dict[str, str]] = None) -> ast.arguments:
    annotations = annotations or {}
    return ast.arguments(
        posonlyargs=[],
        args=[
            ast.arg(
                arg=name,
                annotation=_expr(annotations[name]) if name in annotations else None,
            )
            for name in names
        ],
        vararg=None,
        kwonlyargs=[],
        kw_defaults=[],
        kwarg=None,
        defaults=[],
    )


def _schema_mapping(
    target: str,
    entries: list[MethodEntry],
    members: dict[str, str],
    *,
    request: bool,
) -> ast.AnnAssign:
    keys: list[Optional[ast.expr]] = []
    values: list[ast.expr] = []
    for entry in entries:
        schema_name = entry.request_schema if request else entry.response_schema
        if schema_name is None:
            continue
        keys.append(_member_ref(members[entry.operation_id]))
        values.append(ast.Constant(value=schema_name))
    return _mapping_assign(target, "Mapping[RpcMethod, str]", ast.Dict(keys=keys, values=values))


def _mapping_assign(target: str, annotation: str, value: ast.expr) -> ast.AnnAssign:
    return ast.AnnAssign(
        target=ast.Name(id=target, ctx=ast.Store()),
        annotation=_expr(annotation),
        value=value,
        simple=1,
    )


def _member_ref(member: str) -> ast.Attribute:
    return ast.Attribute(
        value=ast.Name(id=ENUM_CLASS_NAME, ctx=ast.Load()),
        attr=member,
        ctx=ast.Load(),
    )


def _docstring(text: str) -> ast.Expr:
    return ast.Expr(value=ast.Constant(value=text))


def _future_import() -> ast.ImportFrom:
    return ast.ImportFrom(module="__future__", names=[ast.alias(name="annotations")], level=0)


def _expr(code: str) -> ast.expr:
    parsed = ast.parse(code, mode="eval")
    return parsed.body


def _build_imports(definitions: list[ast.stmt]) -> list[ast.stmt]:
    used_names = _collect_loaded_names(definitions)
    typing_imports = [name for name in _TYPING_IMPORT_ORDER if name in used_names]
    pydantic_imports = [name for name in _PYDANTIC_IMPORT_ORDER if name in used_names]

    imports: list[ast.stmt] = []
    if typing_imports:
        imports.append(
            ast.ImportFrom(
                module="typing",
                names=[ast.alias(name=name) for name in typing_imports],
                level=0,
            )
        )
    if pydantic_imports:
        imports.append(
            ast.ImportFrom(
                module="pydantic",
                names=[ast.alias(name=name) for name in pydantic_imports],
                level=0,
            )
        )
    return imports


def _collect_loaded_names(statements: list[ast.stmt]) -> set[str]:
    loaded_names: set[str] = set()
    for statement in statements:
        for node in ast.walk(statement):
            if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Load):
                loaded_names.add(node.id)
    return loaded_names


def _unparse(body: list[ast.stmt]) -> str:
    module = ast.Module(body=body, type_ignores=[])
    ast.fix_missing_locations(module)
    return ast.unparse(module) + "\n"
